"""Unit tests for entity type schemas and validation."""

from __future__ import annotations

import unittest

from commgraph.schema.entity_types import (
    CATEGORY_BY_TYPE,
    ENTITY_SCHEMAS,
    ENTITY_TYPE_VALUES,
    category_for_type,
    create_entity_template,
    entity_display_name,
    normalize_entity_type,
)
from commgraph.schema.validator import validate_entity


class EntityTypeTests(unittest.TestCase):
    def test_every_type_has_schema_and_category(self) -> None:
        for entity_type in ENTITY_TYPE_VALUES:
            self.assertIn(entity_type, ENTITY_SCHEMAS)
            self.assertIn(entity_type, CATEGORY_BY_TYPE)

    def test_normalize_entity_type_accepts_plurals_and_synonyms(self) -> None:
        self.assertEqual(normalize_entity_type("People"), "person")
        self.assertEqual(normalize_entity_type("  Action Item "), "task")
        self.assertEqual(normalize_entity_type("software-system"), "software_system")
        self.assertIsNone(normalize_entity_type("spaceship"))
        self.assertIsNone(normalize_entity_type(None))

    def test_category_for_type(self) -> None:
        self.assertEqual(category_for_type("person"), "people")
        self.assertEqual(category_for_type("timeline"), "timeline")
        self.assertEqual(category_for_type("widget"), "widgets")

    def test_create_entity_template_carries_required_fields(self) -> None:
        template = create_entity_template("decision")
        self.assertEqual(template, {"type": "", "description": "", "confidence": 0.0})
        self.assertEqual(create_entity_template("cost")["amount"], 0.0)

    def test_create_entity_template_rejects_unknown_type(self) -> None:
        with self.assertRaises(ValueError):
            create_entity_template("spaceship")

    def test_entity_display_name(self) -> None:
        self.assertEqual(entity_display_name({"name": "  Mike  Jones "}), "Mike Jones")
        self.assertEqual(entity_display_name({"event": "Pour slab"}, "timeline"), "Pour slab")
        self.assertEqual(entity_display_name({"amount": 25000}, "cost"), "25,000.00 USD")
        self.assertEqual(entity_display_name({}), "")


class EntityValidationTests(unittest.TestCase):
    def test_valid_person(self) -> None:
        verdict = validate_entity({"name": "Mike", "role": "contractor", "confidence": 0.9}, "person")
        self.assertTrue(verdict.valid)
        self.assertEqual(verdict.errors, [])

    def test_missing_required_field(self) -> None:
        verdict = validate_entity({"name": "   ", "confidence": 0.9}, "person")
        self.assertFalse(verdict.valid)
        self.assertEqual(verdict.errors, ["Missing required field: name"])

    def test_invalid_enum_value_lists_allowed_values(self) -> None:
        verdict = validate_entity({"description": "Leak", "severity": "apocalyptic"}, "issue")
        self.assertFalse(verdict.valid)
        self.assertTrue(verdict.errors[0].startswith("Invalid value for severity: apocalyptic. Must be one of: low"))

    def test_confidence_out_of_range(self) -> None:
        verdict = validate_entity({"name": "Kitchen", "confidence": 1.5}, "location")
        self.assertEqual(verdict.errors, ["Confidence must be a number between 0 and 1"])

    def test_cost_amount_must_be_numeric(self) -> None:
        verdict = validate_entity({"amount": "lots"}, "cost")
        self.assertEqual(verdict.errors, ["Field amount must be a number"])

    def test_property_types_are_checked(self) -> None:
        self.assertEqual(validate_entity({"name": 42}, "person").errors, ["Field name must be a string"])
        verdict = validate_entity(
            {"type": "approval", "description": "Go", "approval_required": "yes", "impact": ["cost"]},
            "decision",
        )
        self.assertEqual(
            verdict.errors,
            ["Field impact must be an object", "Field approval_required must be a boolean"],
        )

    def test_numeric_fields_respect_minimum(self) -> None:
        self.assertEqual(validate_entity({"amount": -5}, "cost").errors, ["Field amount must be at least 0"])
        self.assertTrue(validate_entity({"name": "Rebar", "quantity": 0}, "material").valid)
        self.assertEqual(ENTITY_SCHEMAS["cost"].numeric, ("amount",))

    def test_unknown_type(self) -> None:
        verdict = validate_entity({"name": "x"}, "spaceship")
        self.assertEqual(verdict.errors, ["Unknown entity type: spaceship"])

    def test_command_execution_requires_status(self) -> None:
        verdict = validate_entity(
            {"command_string": "git push", "timestamp": "2026-01-01T00:00:00Z"},
            "command_execution",
        )
        self.assertEqual(verdict.errors, ["Missing required field: status"])

    def test_designation_must_be_known(self) -> None:
        self.assertTrue(validate_entity({"name": "Drill", "designation": "product"}, "material").valid)
        verdict = validate_entity({"name": "Drill", "designation": "prototype"}, "material")
        self.assertEqual(verdict.errors, ["Invalid designation: prototype. Must be one of: generic, product, instance"])


if __name__ == "__main__":
    unittest.main()
