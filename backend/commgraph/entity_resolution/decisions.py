"""Persistent record of pairs that were already merged or rejected."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from commgraph.models.pair_decision import PairDecision

Decision = Literal["merged", "rejected"]


def pair_key(left_id: str, right_id: str) -> str:
    """Order-independent key for a pair of entity ids."""

    first, second = sorted((str(left_id), str(right_id)))
    return f"{first}|{second}"


class PairDecisionStore(Protocol):
    """Storage for decided pairs, keyed by ``pair_key``."""

    def has(self, key: str) -> bool: ...

    def get(self, key: str) -> Decision | None: ...

    def add(self, key: str, decision: Decision) -> None: ...

    def remove(self, key: str) -> None: ...

    def persist(self) -> None: ...


class InMemoryPairDecisionStore:
    """Process-local decision store."""

    def __init__(self, decisions: dict[str, Decision] | None = None) -> None:
        self._decisions: dict[str, Decision] = dict(decisions or {})

    def has(self, key: str) -> bool:
        return key in self._decisions

    def get(self, key: str) -> Decision | None:
        return self._decisions.get(key)

    def add(self, key: str, decision: Decision) -> None:
        self._decisions[key] = decision

    def remove(self, key: str) -> None:
        self._decisions.pop(key, None)

    def persist(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._decisions)


class SqlPairDecisionStore:
    """Decision store backed by the ``pair_decisions`` table, one partition per domain.

    Rows are loaded once; ``persist`` flushes pending adds and removals.
    """

    def __init__(self, db: Session, domain: str) -> None:
        self._db = db
        self._domain = domain
        rows = db.scalars(select(PairDecision).where(PairDecision.domain == domain)).all()
        self._decisions: dict[str, Decision] = {row.pair_key: row.decision for row in rows}
        self._pending_add: dict[str, Decision] = {}
        self._pending_remove: set[str] = set()

    def has(self, key: str) -> bool:
        return key in self._decisions

    def get(self, key: str) -> Decision | None:
        return self._decisions.get(key)

    def add(self, key: str, decision: Decision) -> None:
        self._decisions[key] = decision
        self._pending_add[key] = decision
        self._pending_remove.discard(key)

    def remove(self, key: str) -> None:
        self._decisions.pop(key, None)
        self._pending_add.pop(key, None)
        self._pending_remove.add(key)

    def persist(self) -> None:
        if self._pending_remove:
            self._db.execute(
                delete(PairDecision).where(
                    PairDecision.domain == self._domain,
                    PairDecision.pair_key.in_(sorted(self._pending_remove)),
                )
            )
        if self._pending_add:
            existing = {
                row.pair_key: row
                for row in self._db.scalars(
                    select(PairDecision).where(
                        PairDecision.domain == self._domain,
                        PairDecision.pair_key.in_(sorted(self._pending_add)),
                    )
                ).all()
            }
            now = datetime.now(timezone.utc)
            for key, decision in self._pending_add.items():
                row = existing.get(key)
                if row is None:
                    self._db.add(PairDecision(domain=self._domain, pair_key=key, decision=decision, decided_at=now))
                else:
                    row.decision = decision
                    row.decided_at = now
        self._db.flush()
        self._pending_add.clear()
        self._pending_remove.clear()
