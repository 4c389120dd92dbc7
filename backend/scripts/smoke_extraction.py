"""Run a real tiered extraction call against a few demo messages.

Usage (from repo root):
    python backend/scripts/smoke_extraction.py

Usage (from backend/):
    python scripts/smoke_extraction.py

Pass ``--local`` to route every message to the local Ollama tier.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from commgraph.extraction.selector import BatchMessage
from commgraph.extraction.strategies import ExtractionOptions
from commgraph.services.extraction import get_cost_tracker, get_default_selector


def _demo_messages() -> list[BatchMessage]:
    return [
        BatchMessage(
            id="sms-1",
            text="Hey Mike, the plumber can start Tuesday. Estimate is $4,500 for the rough-in.",
        ),
        BatchMessage(
            id="email-1",
            communication_type="email",
            text=(
                "Sarah approved the revised kitchen layout. We decided to move the island 2 feet "
                "and push the cabinet delivery to March 15. Tom will confirm with the supplier by Friday."
            ),
        ),
        BatchMessage(id="sms-2", text="Thanks, see you tomorrow"),
    ]


async def _run(prefer_local: bool) -> None:
    selector = get_default_selector()
    outcomes = await selector.extract_batch(_demo_messages(), ExtractionOptions(prefer_local=prefer_local))
    print(
        json.dumps(
            {
                "items": [outcome.to_dict() for outcome in outcomes],
                "costs": get_cost_tracker().summary(),
            },
            indent=2,
            default=str,
        )
    )


def main() -> None:
    asyncio.run(_run(prefer_local="--local" in sys.argv[1:]))


if __name__ == "__main__":
    main()
