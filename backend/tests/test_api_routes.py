"""HTTP route tests against an in-memory database."""

from __future__ import annotations

import asyncio
import json
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from commgraph.db.dependencies import get_db
from commgraph.extraction.costs import DailyCostTracker
from commgraph.extraction.gateway import Completion, CompletionConfig
from commgraph.extraction.selector import ExtractionStrategySelector
from commgraph.main import app
from commgraph.models.base import Base

_RESPONSE = json.dumps(
    {
        "entities": {
            "people": [{"name": "Mike", "confidence": 0.9}],
            "materials": [{"name": "SIEM Tool", "confidence": 0.9}],
        },
        "relationships": [{"type": "uses", "source": "Mike", "target": "SIEM Tool", "confidence": 0.9}],
        "summary": "Mike uses the SIEM tool.",
    }
)


class _StubGateway:
    async def complete(self, prompt: str, config: CompletionConfig) -> Completion:
        _ = prompt, config
        return Completion(content=_RESPONSE)


async def _no_sleep(delay: float) -> None:
    _ = delay


class ApiRouteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(self.engine)

        def override_get_db():
            db = SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.selector = ExtractionStrategySelector(_StubGateway(), sleep=_no_sleep)
        patcher = patch("commgraph.services.extraction.get_default_selector", lambda: self.selector)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def _extract(self, conversation_id: str, text: str = "Mike uses the SIEM Tool") -> dict:
        response = self.client.post(
            f"/conversations/{conversation_id}/extract",
            json={"text": text, "options": {"domain": "cybersec"}},
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["data"]

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_extract_and_query_entities(self) -> None:
        data = self._extract("conv-1")
        self.assertEqual(data["conversation_id"], "conv-1")
        self.assertEqual(data["entities"]["people"][0]["name"], "Mike")
        self.assertEqual(data["relationships"][0]["type"], "uses")

        listed = self.client.get("/entities", params={"entity_type": "person", "domain": "cybersec"}).json()["data"]
        self.assertEqual([row["id"] for row in listed], [data["record_id"]])
        stats = self.client.get("/entities/stats").json()["data"]
        self.assertEqual(stats["record_count"], 1)
        self.assertEqual(stats["entity_count"], 2)

    def test_extract_validates_payload(self) -> None:
        response = self.client.post("/conversations/conv-1/extract", json={"text": ""})
        self.assertEqual(response.status_code, 422)

    def test_cost_limit_maps_to_429(self) -> None:
        tracker = DailyCostTracker()
        asyncio.run(tracker.add(99.0))
        self.selector = ExtractionStrategySelector(_StubGateway(), cost_tracker=tracker, sleep=_no_sleep)

        response = self.client.post("/conversations/conv-1/extract", json={"text": "ok"})
        self.assertEqual(response.status_code, 429)

    def test_batch_extract(self) -> None:
        response = self.client.post(
            "/conversations/conv-b/extract/batch",
            json={"messages": [{"text": "Mike uses it", "id": "m1"}, {"text": "ok"}]},
        )
        self.assertEqual(response.status_code, 200, response.text)
        items = response.json()["data"]["items"]
        self.assertEqual([item["id"] for item in items], ["m1", "msg_1"])
        self.assertTrue(all(item["success"] for item in items))

    def test_merge_lifecycle(self) -> None:
        self._extract("conv-1")
        self._extract("conv-2")

        candidates = self.client.get("/merges/candidates", params={"domain": "cybersec"}).json()["data"]
        self.assertEqual(len(candidates), 2)
        self.assertTrue(all(c["merge_type"] == "auto" for c in candidates))

        auto = self.client.post("/merges/auto", params={"domain": "cybersec"}).json()["data"]
        self.assertEqual(len(auto["merges"]), 2)
        self.assertEqual(auto["remaining_entities"], 2)

        merge_id = auto["merges"][0]["merge_id"]
        undone = self.client.post(f"/merges/{merge_id}/undo", params={"domain": "cybersec"})
        self.assertEqual(undone.status_code, 200, undone.text)
        self.assertTrue(undone.json()["data"]["record"]["undone"])

        history = self.client.get("/merges/history", params={"domain": "cybersec"}).json()["data"]
        self.assertEqual(len(history), 2)
        stats = self.client.get("/merges/stats", params={"domain": "cybersec"}).json()["data"]
        self.assertEqual(stats["undone_merges"], 1)

        missing = self.client.post("/merges/merge_0_missing/undo", params={"domain": "cybersec"})
        self.assertEqual(missing.status_code, 404)

        redone = self.client.post("/merges/redo", params={"domain": "cybersec"})
        self.assertEqual(redone.status_code, 200, redone.text)
        self.assertEqual(redone.json()["data"]["merge_id"], merge_id)
        self.assertFalse(redone.json()["data"]["undone"])
        self.assertEqual(self.client.post("/merges/redo", params={"domain": "cybersec"}).status_code, 409)

        last = self.client.post("/merges/undo-last", params={"domain": "cybersec"}).json()["data"]
        self.assertEqual(last["record"]["merge_id"], auto["merges"][1]["merge_id"])
        self.assertEqual(self.client.post("/merges/undo-last", params={"domain": "it"}).status_code, 409)

    def test_manual_merge_errors(self) -> None:
        self._extract("conv-1")
        response = self.client.post(
            "/merges",
            json={"primary_id": "1:people:0", "secondary_id": "404:people:0", "domain": "cybersec"},
        )
        self.assertEqual(response.status_code, 404)

        rejected = self.client.post(
            "/merges/reject",
            json={"primary_id": "1:people:0", "secondary_id": "1:materials:0", "domain": "cybersec"},
        )
        self.assertEqual(rejected.json()["data"], {"pair_key": "1:materials:0|1:people:0", "decision": "rejected"})


if __name__ == "__main__":
    unittest.main()
