from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from openai import OpenAI, OpenAIError
from tenacity import Retrying, stop_after_attempt, wait_exponential

from crag.errors import LanguageModelError
from monitoring.metrics import LLM_TOKENS
from utils.settings import OpenAIConfig


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class OpenAIClient:
    """OpenAI-compatible client wrapper.

    Thin wrapper so you can swap gateways/providers without rewriting the app.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        organization: str | None = None,
        timeout_s: float = 30.0,
        max_retries: int = 3,
    ) -> None:
        # tenacity owns retries; the SDK must not retry inside each attempt
        self._client = OpenAI(
            api_key=api_key, base_url=base_url, organization=organization, timeout=timeout_s, max_retries=0
        )
        self._max_retries = max(1, max_retries)

    def chat(
        self,
        model: str,
        messages: list[dict],
        temperature: float,
        max_output_tokens: int,
    ) -> tuple[str, Usage]:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_output_tokens,
        }
        for attempt in Retrying(
            wait=wait_exponential(min=0.5, max=8), stop=stop_after_attempt(self._max_retries), reraise=True
        ):
            with attempt:
                resp = self._client.chat.completions.create(**kwargs)
        text = resp.choices[0].message.content or ""
        u = resp.usage
        return text, Usage(
            input_tokens=getattr(u, "prompt_tokens", 0),
            output_tokens=getattr(u, "completion_tokens", 0),
            total_tokens=getattr(u, "total_tokens", 0),
        )


class OpenAILanguageModel:
    """Single-prompt completion client backed by an OpenAI-compatible chat model."""

    def __init__(self, client: OpenAIClient, model: str) -> None:
        self.client = client
        self.model = model

    @classmethod
    def from_config(cls, cfg: OpenAIConfig) -> "OpenAILanguageModel":
        client = OpenAIClient(
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            organization=cfg.organization,
            timeout_s=cfg.request_timeout_s,
            max_retries=cfg.max_retries,
        )
        return cls(client, cfg.model)

    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        try:
            text, usage = self.client.chat(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_output_tokens=max_tokens,
            )
        except OpenAIError as e:
            raise LanguageModelError(f"{self.model} completion failed: {e}") from e
        LLM_TOKENS.labels(kind="llm_in").inc(float(usage.input_tokens))
        LLM_TOKENS.labels(kind="llm_out").inc(float(usage.output_tokens))
        return text
