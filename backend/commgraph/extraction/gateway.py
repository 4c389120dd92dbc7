"""LLM gateway contract and a stdlib HTTP implementation."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from commgraph.extraction.costs import TokenUsage
from commgraph.extraction.errors import LLMGatewayError


@dataclass(slots=True)
class CompletionConfig:
    """Provider/model selection and sampling options for one call."""

    provider: str
    model: str
    max_tokens: int = 2000
    temperature: float = 0.1
    system_prompt: str | None = None


@dataclass(slots=True)
class Completion:
    """Raw model output plus token usage."""

    content: str
    usage: TokenUsage | None = None


class LLMGateway(Protocol):
    """Protocol for pluggable completion backends."""

    async def complete(self, prompt: str, config: CompletionConfig) -> Completion:
        """Return the model completion for a prompt."""


@dataclass(slots=True)
class ProviderEndpoint:
    base_url: str
    api_key: str | None = None


@dataclass(slots=True)
class HttpLLMGateway:
    """Completion client for OpenAI-compatible, Anthropic and Ollama endpoints using stdlib HTTP."""

    endpoints: dict[str, ProviderEndpoint]
    timeout_seconds: int = 60

    async def complete(self, prompt: str, config: CompletionConfig) -> Completion:
        return await asyncio.to_thread(self._complete_sync, prompt, config)

    def _complete_sync(self, prompt: str, config: CompletionConfig) -> Completion:
        endpoint = self.endpoints.get(config.provider)
        if endpoint is None:
            raise LLMGatewayError(f"Provider is not configured: {config.provider}")
        if config.provider == "anthropic":
            return self._anthropic(endpoint, prompt, config)
        if config.provider == "ollama":
            return self._ollama(endpoint, prompt, config)
        return self._chat_completions(endpoint, prompt, config)

    def _chat_completions(self, endpoint: ProviderEndpoint, prompt: str, config: CompletionConfig) -> Completion:
        if not endpoint.api_key:
            raise LLMGatewayError(f"{config.provider.upper()}_API_KEY is not configured")
        messages: list[dict[str, str]] = []
        if config.system_prompt:
            messages.append({"role": "system", "content": config.system_prompt})
        messages.append({"role": "user", "content": prompt})
        decoded = self._post(
            f"{endpoint.base_url.rstrip('/')}/chat/completions",
            {
                "model": config.model,
                "max_tokens": config.max_tokens,
                "temperature": config.temperature,
                "messages": messages,
            },
            {"Authorization": f"Bearer {endpoint.api_key}"},
            provider=config.provider,
        )
        try:
            content = decoded["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                raise TypeError("response content is not a string")
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMGatewayError(f"{config.provider} returned an unexpected response envelope") from exc
        usage = decoded.get("usage") or {}
        return Completion(
            content=content,
            usage=TokenUsage(
                prompt_tokens=int(usage.get("prompt_tokens") or 0),
                completion_tokens=int(usage.get("completion_tokens") or 0),
            ),
        )

    def _anthropic(self, endpoint: ProviderEndpoint, prompt: str, config: CompletionConfig) -> Completion:
        if not endpoint.api_key:
            raise LLMGatewayError("ANTHROPIC_API_KEY is not configured")
        payload: dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if config.system_prompt:
            payload["system"] = config.system_prompt
        decoded = self._post(
            f"{endpoint.base_url.rstrip('/')}/messages",
            payload,
            {"x-api-key": endpoint.api_key, "anthropic-version": "2023-06-01"},
            provider=config.provider,
        )
        try:
            content = "".join(
                block.get("text", "") for block in decoded["content"] if block.get("type") == "text"
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise LLMGatewayError("anthropic returned an unexpected response envelope") from exc
        usage = decoded.get("usage") or {}
        return Completion(
            content=content,
            usage=TokenUsage(
                prompt_tokens=int(usage.get("input_tokens") or 0),
                completion_tokens=int(usage.get("output_tokens") or 0),
            ),
        )

    def _ollama(self, endpoint: ProviderEndpoint, prompt: str, config: CompletionConfig) -> Completion:
        payload: dict[str, Any] = {
            "model": config.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": config.temperature, "num_predict": config.max_tokens},
        }
        if config.system_prompt:
            payload["system"] = config.system_prompt
        decoded = self._post(
            f"{endpoint.base_url.rstrip('/')}/api/generate",
            payload,
            {},
            provider=config.provider,
        )
        content = decoded.get("response")
        if not isinstance(content, str):
            raise LLMGatewayError("ollama returned an unexpected response envelope")
        return Completion(
            content=content,
            usage=TokenUsage(
                prompt_tokens=int(decoded.get("prompt_eval_count") or 0),
                completion_tokens=int(decoded.get("eval_count") or 0),
            ),
        )

    def _post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        *,
        provider: str,
    ) -> dict[str, Any]:
        req = urllib_request.Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={"Content-Type": "application/json", **headers},
        )
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise LLMGatewayError(f"{provider} HTTP {exc.code}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise LLMGatewayError(f"{provider} request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise LLMGatewayError(f"{provider} request timed out") from exc

        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise LLMGatewayError(f"{provider} returned a non-JSON envelope") from exc
        if not isinstance(decoded, dict):
            raise LLMGatewayError(f"{provider} returned a non-object envelope")
        return decoded
