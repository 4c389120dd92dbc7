"""Unit tests for cost accounting and the HTTP completion gateway."""

from __future__ import annotations

import io
import json
import unittest
from datetime import date
from unittest.mock import patch
from urllib import error as urllib_error

from commgraph.extraction.costs import DailyCostTracker, TokenUsage, estimate_cost, model_rates
from commgraph.extraction.errors import LLMGatewayError
from commgraph.extraction.gateway import CompletionConfig, HttpLLMGateway, ProviderEndpoint

_URLOPEN = "commgraph.extraction.gateway.urllib_request.urlopen"


class _FakeResponse:
    def __init__(self, payload: object) -> None:
        self._raw = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


class CostEstimationTests(unittest.TestCase):
    def test_model_rates(self) -> None:
        self.assertEqual(model_rates("openai", "gpt-4"), (0.03, 0.06))
        self.assertEqual(model_rates("openai", "gpt-3.5-turbo"), (0.001, 0.002))
        self.assertEqual(model_rates("openrouter", "anthropic/claude-3.5-sonnet"), (0.003, 0.015))
        self.assertEqual(model_rates("anthropic", "claude-3-opus"), (0.008, 0.024))
        self.assertEqual(model_rates("ollama", "llama3.1:8b"), (0.0, 0.0))
        self.assertEqual(model_rates("openai", "mystery"), (0.002, 0.002))

    def test_estimate_cost(self) -> None:
        usage = TokenUsage(prompt_tokens=2000, completion_tokens=1000)
        self.assertAlmostEqual(estimate_cost("openai", "gpt-4", usage), 0.12)
        self.assertEqual(estimate_cost("ollama", "llama3.1:8b", usage), 0.0)
        self.assertEqual(estimate_cost("openai", "gpt-4", None), 0.0)


class DailyCostTrackerTests(unittest.IsolatedAsyncioTestCase):
    async def test_daily_total_resets_on_new_day(self) -> None:
        today = {"value": date(2026, 3, 1)}
        tracker = DailyCostTracker(today=lambda: today["value"])

        await tracker.add(4.0)
        await tracker.add(7.0)
        self.assertTrue(tracker.exceeds(10.0))
        self.assertFalse(tracker.exceeds(11.0))

        today["value"] = date(2026, 3, 2)
        self.assertEqual(tracker.daily_cost, 0.0)
        self.assertEqual(tracker.total_cost, 11.0)
        self.assertEqual(tracker.request_count, 2)
        self.assertEqual(tracker.summary()["day"], "2026-03-02")

    async def test_negative_costs_are_ignored(self) -> None:
        tracker = DailyCostTracker()
        self.assertEqual(await tracker.add(-1.0), 0.0)


class HttpLLMGatewayTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.gateway = HttpLLMGateway(
            endpoints={
                "openai": ProviderEndpoint(base_url="https://api.openai.test/v1/", api_key="sk-test"),
                "anthropic": ProviderEndpoint(base_url="https://api.anthropic.test/v1", api_key="ak-test"),
                "ollama": ProviderEndpoint(base_url="http://localhost:11434"),
                "openrouter": ProviderEndpoint(base_url="https://openrouter.test/api/v1"),
            }
        )

    async def test_chat_completions_envelope(self) -> None:
        payload = {
            "choices": [{"message": {"content": '{"summary": "ok"}'}}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 5},
        }
        with patch(_URLOPEN, return_value=_FakeResponse(payload)) as urlopen:
            completion = await self.gateway.complete(
                "hello",
                CompletionConfig(provider="openai", model="gpt-4", system_prompt="be terse"),
            )

        request = urlopen.call_args.args[0]
        body = json.loads(request.data.decode("utf-8"))
        self.assertEqual(request.full_url, "https://api.openai.test/v1/chat/completions")
        self.assertEqual(request.get_header("Authorization"), "Bearer sk-test")
        self.assertEqual(body["messages"][0], {"role": "system", "content": "be terse"})
        self.assertEqual(completion.content, '{"summary": "ok"}')
        self.assertEqual(completion.usage, TokenUsage(prompt_tokens=12, completion_tokens=5))

    async def test_anthropic_envelope(self) -> None:
        payload = {
            "content": [{"type": "text", "text": "part one "}, {"type": "text", "text": "part two"}],
            "usage": {"input_tokens": 7, "output_tokens": 3},
        }
        with patch(_URLOPEN, return_value=_FakeResponse(payload)) as urlopen:
            completion = await self.gateway.complete("hello", CompletionConfig(provider="anthropic", model="claude-3"))

        request = urlopen.call_args.args[0]
        self.assertEqual(request.full_url, "https://api.anthropic.test/v1/messages")
        self.assertEqual(completion.content, "part one part two")
        self.assertEqual(completion.usage.completion_tokens, 3)

    async def test_ollama_envelope(self) -> None:
        payload = {"response": "{}", "prompt_eval_count": 9, "eval_count": 4}
        with patch(_URLOPEN, return_value=_FakeResponse(payload)) as urlopen:
            completion = await self.gateway.complete("hello", CompletionConfig(provider="ollama", model="llama3.1:8b"))

        request = urlopen.call_args.args[0]
        self.assertEqual(request.full_url, "http://localhost:11434/api/generate")
        self.assertFalse(json.loads(request.data.decode("utf-8"))["stream"])
        self.assertEqual(completion.usage, TokenUsage(prompt_tokens=9, completion_tokens=4))

    async def test_missing_key_and_unknown_provider_fail(self) -> None:
        with self.assertRaises(LLMGatewayError):
            await self.gateway.complete("hello", CompletionConfig(provider="openrouter", model="x"))
        with self.assertRaises(LLMGatewayError):
            await self.gateway.complete("hello", CompletionConfig(provider="mystery", model="x"))

    async def test_http_error_is_wrapped(self) -> None:
        failure = urllib_error.HTTPError(
            "https://api.openai.test/v1/chat/completions",
            429,
            "Too Many Requests",
            None,
            io.BytesIO(b"rate limited"),
        )
        with patch(_URLOPEN, side_effect=failure):
            with self.assertRaises(LLMGatewayError) as ctx:
                await self.gateway.complete("hello", CompletionConfig(provider="openai", model="gpt-4"))
        self.assertIn("HTTP 429", str(ctx.exception))

    async def test_unexpected_envelope_is_rejected(self) -> None:
        with patch(_URLOPEN, return_value=_FakeResponse({"choices": []})):
            with self.assertRaises(LLMGatewayError):
                await self.gateway.complete("hello", CompletionConfig(provider="openai", model="gpt-4"))


if __name__ == "__main__":
    unittest.main()
