"""Unit tests for best-effort LLM response decoding."""

from __future__ import annotations

import json
import unittest

from commgraph.extraction.relationship_validator import RelationshipValidator
from commgraph.extraction.response_parser import ResponseParser, decode_llm_json
from commgraph.extraction.rule_based_extractor import RuleBasedExtractor, build_basic_result, extract_basic_entities


def _payload(**overrides: object) -> str:
    body: dict[str, object] = {
        "entities": {
            "people": [{"name": "Mike", "role": "Contractor", "confidence": 0.9}],
            "costs": [{"amount": "$25k", "currency": "USD", "type": "estimate", "confidence": 0.8}],
            "timeline": [{"event": "Foundation work starts Monday", "confidence": 0.85}],
        },
        "relationships": [],
        "summary": "Permits approved; foundation starts Monday.",
    }
    body.update(overrides)
    return json.dumps(body)


class DecodeTests(unittest.TestCase):
    def test_strips_fences_and_prose(self) -> None:
        decoded = decode_llm_json('Sure! Here you go:\n```json\n{"summary": "x"}\n```\nLet me know.')
        self.assertEqual(decoded.payload, {"summary": "x"})
        self.assertIsNone(decoded.error)

    def test_reports_reason_for_unusable_content(self) -> None:
        self.assertEqual(decode_llm_json("").error, "empty response")
        self.assertEqual(decode_llm_json("I cannot process this request.").error, "no JSON object found in response")
        self.assertTrue(decode_llm_json("{not json}").error.startswith("invalid JSON"))
        self.assertEqual(decode_llm_json('{"open": 1').error, "no JSON object found in response")


class ResponseParserTests(unittest.TestCase):
    def test_parses_well_formed_payload(self) -> None:
        result = ResponseParser().parse(_payload())

        self.assertEqual(result.entities["people"][0]["name"], "Mike")
        self.assertEqual(result.entities["people"][0]["role"], "contractor")
        self.assertEqual(result.entities["costs"][0]["amount"], 25000.0)
        self.assertIn("Monday", result.entities["timeline"][0]["event"])
        self.assertEqual(result.summary, "Permits approved; foundation starts Monday.")
        self.assertAlmostEqual(result.metadata.confidence, (0.9 + 0.8 + 0.85) / 3)
        self.assertFalse(result.metadata.is_fallback)

    def test_non_json_response_falls_back_without_raising(self) -> None:
        result = ResponseParser().parse("I cannot process this request.")

        self.assertEqual(result.relationships, [])
        self.assertTrue(result.metadata.is_fallback)
        self.assertFalse(result.metadata.is_basic)
        self.assertTrue(result.summary.startswith("Fallback extraction:"))
        self.assertIn("no JSON object found in response", result.metadata.validation_warnings)

    def test_fallback_sweeps_source_text_when_given(self) -> None:
        result = ResponseParser().parse("garbage", source_text="Hey Mike, budget is $4,500.")
        self.assertEqual([p["name"] for p in result.entities["people"]], ["Mike"])
        self.assertEqual(result.entities["costs"][0]["amount"], 4500.0)

    def test_confidence_is_clamped_and_defaulted(self) -> None:
        content = json.dumps(
            {
                "entities": {
                    "people": [
                        {"name": "Over", "confidence": 7},
                        {"name": "Missing"},
                        {"name": "Garbled", "confidence": "very"},
                    ]
                }
            }
        )
        result = ResponseParser(default_confidence=0.65).parse(content)
        confidences = {p["name"]: p["confidence"] for p in result.entities["people"]}
        self.assertEqual(confidences, {"Over": 1.0, "Missing": 0.65, "Garbled": 0.65})

    def test_entities_below_floor_and_schema_failures_are_dropped(self) -> None:
        content = json.dumps(
            {
                "entities": {
                    "people": [{"name": "Faint", "confidence": 0.2}, {"name": "Solid", "confidence": 0.9}],
                    "issues": [{"description": "Leak", "severity": "apocalyptic", "confidence": 0.9}],
                    "decisions": [{"description": "Go ahead", "confidence": 0.9}],
                    "spaceships": [{"name": "Enterprise"}],
                }
            }
        )
        result = ResponseParser(min_confidence=0.5).parse(content)

        self.assertEqual([p["name"] for p in result.entities["people"]], ["Solid"])
        self.assertEqual(result.entities["issues"], [])
        self.assertEqual(result.entities["decisions"], [])
        self.assertNotIn("spaceships", result.entities)
        self.assertEqual(result.metadata.dropped_entities, 4)
        warnings = result.metadata.validation_warnings
        self.assertIn("Unknown entity category: spaceships", warnings)
        self.assertIn("decisions[0]: Missing required field: type", warnings)

    def test_entity_list_is_grouped_by_type(self) -> None:
        content = json.dumps(
            {
                "entities": [
                    {"entity_type": "person", "name": "Sarah", "confidence": 0.9},
                    {"entity_type": "material", "name": "Oak flooring", "category": "flooring", "confidence": 0.8},
                ]
            }
        )
        result = ResponseParser().parse(content)
        self.assertEqual(result.entities["people"][0]["name"], "Sarah")
        self.assertEqual(result.entities["materials"][0]["name"], "Oak flooring")

    def test_relationships_accept_alias_and_infer_endpoint_types(self) -> None:
        content = _payload(
            relationships=[
                {
                    "relationship_type": "Responsible For",
                    "source": "Mike",
                    "target": "Foundation work starts Monday",
                    "confidence": 0.9,
                },
                {
                    "type": "manages",
                    "source": "Mike",
                    "target": "Kitchen",
                    "target_type": "Locations",
                    "confidence": 0.95,
                },
                {"type": "manages", "source": "Mike"},
                "not an object",
            ]
        )
        result = ResponseParser().parse(content)

        self.assertEqual(len(result.relationships), 2)
        first, second = result.relationships
        self.assertEqual(first.type, "responsible_for")
        self.assertEqual(first.source_type, "person")
        self.assertEqual(first.target_type, "timeline")
        self.assertEqual(second.target_type, "location")
        self.assertEqual(result.metadata.dropped_relationships, 2)

    def test_declared_endpoint_types_are_kept(self) -> None:
        content = _payload(
            relationships=[
                {
                    "type": "manages",
                    "source": "Mike",
                    "source_type": "Project",
                    "target": "Acme",
                    "target_type": "vendor",
                    "confidence": 0.9,
                },
                {"type": "manages", "source": "Mike", "target": "Acme", "source_type": "  ", "confidence": 0.9},
            ]
        )
        result = ResponseParser().parse(content)

        declared, blank = result.relationships
        self.assertEqual(declared.source_type, "project")
        self.assertEqual(declared.target_type, "vendor")
        self.assertEqual(blank.source_type, "person")
        self.assertEqual(blank.target_type, "unknown")

    def test_validator_gate_applies(self) -> None:
        content = _payload(
            relationships=[
                {"type": "manages", "source": "Alice", "target": "ProjectX", "confidence": 0.6},
                {"type": "manages", "source": "Alice", "target": "ProjectX", "confidence": 0.9},
                {"type": "likes", "source": "Alice", "target": "ProjectX", "confidence": 0.9},
                {"type": "manages", "source": "Alice", "target": "ProjectY"},
            ]
        )
        result = ResponseParser(relationship_validator=RelationshipValidator()).parse(content)

        self.assertEqual(len(result.relationships), 1)
        kept = result.relationships[0]
        self.assertEqual(kept.confidence, 0.9)
        self.assertEqual(kept.source_type, "unknown")
        self.assertIsNotNone(kept.created_at)
        self.assertEqual(result.metadata.dropped_relationships, 3)
        self.assertIn("Unknown relationship type: likes", result.metadata.validation_warnings)
        self.assertAlmostEqual(result.metadata.confidence, (0.9 + 0.8 + 0.85 + 0.9) / 4)

    def test_every_confidence_is_bounded(self) -> None:
        content = json.dumps(
            {
                "entities": {"people": [{"name": "Neg", "confidence": -3}, {"name": "Big", "confidence": 3}]},
                "relationships": [{"type": "manages", "source": "Big", "target": "Neg", "confidence": 9}],
            }
        )
        result = ResponseParser(min_confidence=0.0).parse(content)
        values = [p["confidence"] for p in result.entities["people"]] + [r.confidence for r in result.relationships]
        self.assertTrue(all(0.0 <= value <= 1.0 for value in values))


class RuleBasedExtractorTests(unittest.TestCase):
    def test_extracts_names_and_costs(self) -> None:
        entities = RuleBasedExtractor().extract("Hey Mike, tell Sarah Jones the quote is $12k, not $12,000. Thanks")
        self.assertEqual([p["name"] for p in entities["people"]], ["Mike", "Sarah Jones"])
        self.assertEqual([c["amount"] for c in entities["costs"]], [12000.0])
        self.assertEqual(entities["costs"][0]["confidence"], 0.6)

    def test_build_result_is_flagged_basic(self) -> None:
        result = RuleBasedExtractor().build_result("ok")
        self.assertTrue(result.metadata.is_fallback)
        self.assertTrue(result.metadata.is_basic)
        self.assertEqual(result.metadata.strategy, "rule_based")
        self.assertEqual(result.metadata.confidence, 0.3)
        self.assertEqual(result.entities, {"people": [], "costs": []})

    def test_module_helpers_share_the_extractor(self) -> None:
        text = "Call Sarah about the $900 invoice"
        self.assertEqual(extract_basic_entities(text), RuleBasedExtractor().extract(text))
        result = build_basic_result(text, summary="Basic extraction")
        self.assertEqual(result.summary, "Basic extraction")
        self.assertEqual([c["amount"] for c in result.entities["costs"]], [900.0])


if __name__ == "__main__":
    unittest.main()
