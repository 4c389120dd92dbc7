"""Unit tests for complexity scoring, tier selection and prompt rendering."""

from __future__ import annotations

import unittest

from commgraph.extraction.complexity import analyze_complexity
from commgraph.extraction.prompt_builder import build_extraction_prompt, get_system_prompt
from commgraph.extraction.strategies import (
    BALANCED,
    DEFAULT_TIERS,
    FAST,
    HIGH_ACCURACY,
    LOCAL,
    ExtractionOptions,
    fallback_chain,
    select_tier,
)

SITE_UPDATE_TEXT = "Hey Mike, permits approved! Foundation work starts Monday. Budget is $25,000."


class ComplexityTests(unittest.TestCase):
    def test_signals_add_up_to_high(self) -> None:
        analysis = analyze_complexity(SITE_UPDATE_TEXT)
        self.assertTrue(analysis.has_numbers)
        self.assertTrue(analysis.has_names)
        self.assertTrue(analysis.has_decisions)
        self.assertTrue(analysis.has_timeline)
        self.assertEqual(analysis.score, 4)
        self.assertEqual(analysis.level, "high")

    def test_lowercase_chatter_is_low(self) -> None:
        analysis = analyze_complexity("ok see you there")
        self.assertEqual(analysis.score, 0)
        self.assertEqual(analysis.level, "low")

    def test_word_count_contributes(self) -> None:
        long_text = " ".join(["word"] * 120)
        analysis = analyze_complexity(long_text)
        self.assertEqual(analysis.word_count, 120)
        self.assertEqual(analysis.score, 2)
        self.assertEqual(analysis.level, "medium")

    def test_cut_points_are_configurable(self) -> None:
        analysis = analyze_complexity("Mike called", high_score=1, medium_score=1)
        self.assertEqual(analysis.level, "high")

    def test_to_dict(self) -> None:
        payload = analyze_complexity("ok").to_dict()
        self.assertEqual(payload["level"], "low")
        self.assertIn("word_count", payload)


class TierSelectionTests(unittest.TestCase):
    def test_level_maps_to_tier(self) -> None:
        options = ExtractionOptions()
        self.assertEqual(select_tier(analyze_complexity(SITE_UPDATE_TEXT), options).name, HIGH_ACCURACY)
        self.assertEqual(select_tier(analyze_complexity("Mike said tomorrow"), options).name, BALANCED)
        self.assertEqual(select_tier(analyze_complexity("ok"), options).name, FAST)

    def test_hints_override_complexity(self) -> None:
        low = analyze_complexity("ok")
        high = analyze_complexity(SITE_UPDATE_TEXT)
        self.assertEqual(select_tier(low, ExtractionOptions(force_high_accuracy=True)).name, HIGH_ACCURACY)
        self.assertEqual(select_tier(high, ExtractionOptions(urgent=True)).name, FAST)
        self.assertEqual(select_tier(high, ExtractionOptions(prefer_local=True)).name, LOCAL)
        self.assertEqual(
            select_tier(low, ExtractionOptions(force_high_accuracy=True, urgent=True)).name,
            HIGH_ACCURACY,
        )

    def test_fallback_chain_skips_repeats(self) -> None:
        chain = fallback_chain(DEFAULT_TIERS[HIGH_ACCURACY])
        self.assertEqual([tier.name for tier in chain], [HIGH_ACCURACY, FAST])
        chain = fallback_chain(DEFAULT_TIERS[FAST])
        self.assertEqual([tier.name for tier in chain], [FAST])
        chain = fallback_chain(DEFAULT_TIERS[LOCAL], order=(BALANCED, "missing", FAST))
        self.assertEqual([tier.name for tier in chain], [LOCAL, BALANCED, FAST])

    def test_without_high_accuracy(self) -> None:
        options = ExtractionOptions(force_high_accuracy=True, context="kitchen remodel")
        relaxed = options.without_high_accuracy()
        self.assertFalse(relaxed.force_high_accuracy)
        self.assertEqual(relaxed.context, "kitchen remodel")
        self.assertTrue(options.force_high_accuracy)


class PromptBuilderTests(unittest.TestCase):
    def test_system_prompt_loads(self) -> None:
        prompt = get_system_prompt()
        self.assertIn("JSON", prompt)

    def test_user_prompt_lists_domain_types_first(self) -> None:
        prompt = build_extraction_prompt(
            "Pour the slab Friday",
            communication_type="email",
            context="Kitchen remodel",
            domain="construction",
        )
        allowed_line = next(line for line in prompt.splitlines() if line.startswith("Allowed relationship types:"))
        allowed = allowed_line.split(":", 1)[1].strip().split(", ")
        self.assertEqual(allowed[0], "installed_in")
        self.assertLessEqual(len(allowed), 10)
        self.assertIn("CONTEXT: Kitchen remodel", prompt)
        self.assertIn("This is an email.", prompt)
        self.assertTrue(prompt.endswith("TEXT TO ANALYZE:\nPour the slab Friday"))


if __name__ == "__main__":
    unittest.main()
