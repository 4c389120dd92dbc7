"""Integration tests for stored extraction records and pair decisions."""

from __future__ import annotations

import unittest

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from commgraph.entity_resolution.decisions import SqlPairDecisionStore
from commgraph.extraction.types import ExtractedRelationship, ExtractionMetadata, ExtractionResult
from commgraph.models.base import Base
from commgraph.models.entity_record import EntityRecord
from commgraph.models.pair_decision import PairDecision
from commgraph.services.entity_store import (
    EntityQuery,
    flatten_record,
    get_entity_record,
    get_store_stats,
    query_entities,
    store_entities,
)


def _result() -> ExtractionResult:
    return ExtractionResult(
        entities={
            "people": [{"name": "Mike", "role": "contractor", "confidence": 0.9}],
            "projects": [{"name": "Kitchen Remodel", "phase": "planning", "confidence": 0.8}],
            "costs": [{"amount": 25000.0, "currency": "USD", "confidence": 0.85}],
        },
        relationships=[
            ExtractedRelationship(
                type="manages",
                source="Mike",
                target="Kitchen Remodel",
                confidence=0.9,
                source_type="person",
                target_type="project",
                provenance="llm_extraction",
            ),
            ExtractedRelationship(type="uses", source="Mike", target="Excavator", confidence=0.8),
            ExtractedRelationship(type="uses", source="Nobody", target="Mike", confidence=0.8),
        ],
        summary="Mike manages the kitchen remodel.",
        metadata=ExtractionMetadata(confidence=0.85, tier="balanced", is_fallback=True),
    )


class EntityStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        self.db.execute(delete(EntityRecord))
        self.db.execute(delete(PairDecision))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def test_store_extraction_result(self) -> None:
        record_id = store_entities(self.db, "conv-1", _result(), {"message_id": "m1"}, domain="construction")
        self.db.commit()

        record = get_entity_record(self.db, record_id)
        self.assertIsNotNone(record)
        self.assertEqual(record.entity_count, 3)
        self.assertEqual(record.domain, "construction")
        self.assertEqual(record.confidence, 0.85)
        self.assertTrue(record.is_fallback)
        self.assertEqual(record.metadata_json["tier"], "balanced")
        self.assertEqual(record.metadata_json["message_id"], "m1")
        self.assertEqual(record.relationships_json[0]["type"], "manages")
        self.assertIsNotNone(record.created_at)

    def test_store_plain_entity_mapping(self) -> None:
        record_id = store_entities(
            self.db,
            "conv-2",
            {"people": [{"name": "Ann", "confidence": 0.6}, {"name": "Bo", "confidence": 0.8}]},
            domain="cybersec",
        )
        record = get_entity_record(self.db, record_id)
        self.assertAlmostEqual(record.confidence, 0.7)
        self.assertEqual(record.relationships_json, [])

    def test_query_filters(self) -> None:
        first = store_entities(self.db, "conv-1", _result(), domain="construction")
        second = store_entities(
            self.db,
            "conv-2",
            {"materials": [{"name": "Oak flooring", "confidence": 0.5}]},
            domain="construction",
        )
        third = store_entities(
            self.db,
            "conv-3",
            {"people": [{"name": "Eve", "confidence": 0.95}]},
            domain="cybersec",
        )
        self.db.commit()

        def ids(query: EntityQuery) -> list[int]:
            return [record.id for record in query_entities(self.db, query)]

        self.assertEqual(ids(EntityQuery()), [third, second, first])
        self.assertEqual(ids(EntityQuery(conversation_id="conv-2")), [second])
        self.assertEqual(ids(EntityQuery(entity_type="person")), [third, first])
        self.assertEqual(ids(EntityQuery(entity_type="materials")), [second])
        self.assertEqual(ids(EntityQuery(text_substring="OAK")), [second])
        self.assertEqual(ids(EntityQuery(text_substring="kitchen remodel")), [first])
        self.assertEqual(ids(EntityQuery(min_confidence=0.8)), [third, first])
        self.assertEqual(ids(EntityQuery(domain="cybersec")), [third])
        self.assertEqual(ids(EntityQuery(limit=1)), [third])

    def test_store_stats(self) -> None:
        self.assertEqual(get_store_stats(self.db).record_count, 0)
        store_entities(self.db, "conv-1", _result(), domain="construction")
        store_entities(self.db, "conv-1", {"people": [{"name": "Ann", "confidence": 0.6}]}, domain="construction")
        store_entities(self.db, "conv-2", {"people": [{"name": "Bo", "confidence": 0.6}]}, domain="construction")
        self.db.commit()

        stats = get_store_stats(self.db)
        self.assertEqual(stats.record_count, 3)
        self.assertEqual(stats.entity_count, 5)
        self.assertEqual(stats.conversation_count, 2)
        self.assertIsNotNone(stats.last_updated)

    def test_flatten_record_builds_graph_entities(self) -> None:
        record_id = store_entities(self.db, "conv-1", _result(), domain="construction")
        record = get_entity_record(self.db, record_id)

        entities = {entity.id: entity for entity in flatten_record(record)}

        mike = entities[f"{record_id}:people:0"]
        self.assertEqual(mike.name, "Mike")
        self.assertEqual(mike.type, "person")
        self.assertEqual(mike.confidence, 0.9)
        self.assertEqual(mike.conversation_id, "conv-1")
        self.assertEqual(mike.attributes["role"], "contractor")
        self.assertEqual(
            [(r.type, r.target_id) for r in mike.relationships],
            [("manages", f"{record_id}:projects:0"), ("uses", "Excavator")],
        )
        self.assertEqual(entities[f"{record_id}:costs:0"].name, "25,000.00 USD")


class SqlPairDecisionStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        self.db.execute(delete(PairDecision))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def test_decisions_persist_per_domain(self) -> None:
        store = SqlPairDecisionStore(self.db, "construction")
        store.add("a|b", "merged")
        store.add("c|d", "rejected")
        self.assertFalse(self.db.scalars(select(PairDecision)).all())
        store.persist()
        self.db.commit()

        reloaded = SqlPairDecisionStore(self.db, "construction")
        self.assertEqual(reloaded.get("a|b"), "merged")
        self.assertTrue(reloaded.has("c|d"))
        self.assertFalse(SqlPairDecisionStore(self.db, "cybersec").has("a|b"))

        reloaded.remove("a|b")
        reloaded.add("c|d", "merged")
        reloaded.persist()
        self.db.commit()

        rows = {row.pair_key: row.decision for row in self.db.scalars(select(PairDecision)).all()}
        self.assertEqual(rows, {"c|d": "merged"})


if __name__ == "__main__":
    unittest.main()
