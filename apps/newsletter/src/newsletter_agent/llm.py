"""Client boundary for the generative text service.

``LLMClient`` sends one instruction to Anthropic or OpenAI (picked by model
prefix) and returns the concatenated text. Every failure mode is raised as
a ``GenerationError`` subclass carrying the section key.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .errors import CredentialMissing, GenerationError, TransportError

logger = logging.getLogger(__name__)

MODEL_PRICING: dict[str, dict[str, float]] = {
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
    "gpt-5.1-2025-11-13": {"input": 2.50, "output": 10.00},
    "gpt-5-nano-2025-08-07": {"input": 0.10, "output": 0.40},
}

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}


@dataclass
class UsageCost:
    """Token usage and cost for an LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0

    def __add__(self, other: "UsageCost") -> "UsageCost":
        return UsageCost(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cost_usd=self.cost_usd + other.cost_usd,
        )


@dataclass
class GenerationRequest:
    """One call to the generation service.

    Attributes:
        section_key: Section this call produces content for
        system: Fixed voice/audience framing
        prompt: Step-specific instruction
        web_search: Whether web-retrieval augmentation is requested
        max_tokens: Response size ceiling
    """
    section_key: str
    system: str
    prompt: str
    web_search: bool = False
    max_tokens: int = 1000


@dataclass
class GenerationResponse:
    text: str
    usage: UsageCost = field(default_factory=UsageCost)


class GenerationClient(ABC):
    """Anything that can turn a ``GenerationRequest`` into text."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run one request.

        Raises:
            GenerationError: For any failure (missing key, provider error,
                connection failure).
        """


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Calculate cost in USD for token usage."""
    pricing = MODEL_PRICING.get(model, {"input": 0.0, "output": 0.0})
    input_cost = (input_tokens / 1_000_000) * pricing["input"]
    output_cost = (output_tokens / 1_000_000) * pricing["output"]
    return input_cost + output_cost


class LLMClient(GenerationClient):
    """Calls Anthropic (``claude-*``) or OpenAI (``gpt-*``) models."""

    def __init__(
        self,
        model: str,
        api_key: str | None,
        llm_log_dir: Path | None = None,
    ):
        self.model = model
        self.api_key = api_key
        self._llm_log_dir = Path(llm_log_dir) if llm_log_dir else None

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        if not self.api_key:
            raise CredentialMissing(request.section_key, "No API key configured")
        if self.model.startswith("gpt"):
            return self._call_openai(request)
        elif self.model.startswith("claude"):
            return self._call_anthropic(request)
        else:
            raise GenerationError(request.section_key, f"Unsupported model: {self.model}")

    def _log_llm_call(
        self,
        section_key: str,
        request_data: dict[str, Any],
        response_text: str,
        provider: str,
    ) -> None:
        """Write the call to the log directory, if one is configured."""
        if self._llm_log_dir is None:
            return
        self._llm_log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = self._llm_log_dir / f"{timestamp}_{section_key}_{provider}.json"

        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "section_key": section_key,
            "provider": provider,
            "model": self.model,
            "request": request_data,
            "response": response_text,
        }

        log_path.write_text(json.dumps(log_entry, indent=2, default=str))
        logger.debug(f"Logged LLM call to {log_path.name}")

    def _request_data(self, request: GenerationRequest) -> dict[str, Any]:
        prompt = request.prompt
        return {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "web_search": request.web_search,
            "prompt_preview": prompt[:500] + "..." if len(prompt) > 500 else prompt,
        }

    def _call_anthropic(self, request: GenerationRequest) -> GenerationResponse:
        """Call the Anthropic Messages API, with the web search tool when requested."""
        from anthropic import Anthropic, APIConnectionError, APIError, APIStatusError

        client = Anthropic(api_key=self.api_key)

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "system": request.system,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.web_search:
            kwargs["tools"] = [WEB_SEARCH_TOOL]

        request_data = self._request_data(request)
        try:
            response = client.messages.create(**kwargs)
        except APIStatusError as e:
            self._log_llm_call(request.section_key, request_data, f"[ERROR {e.status_code}: {e.message}]", "anthropic")
            raise TransportError(request.section_key, f"API error {e.status_code}: {e.message}", status_code=e.status_code) from e
        except APIConnectionError as e:
            raise TransportError(request.section_key, f"Connection failed: {e}") from e
        except APIError as e:
            raise TransportError(request.section_key, str(e)) from e

        response_text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        input_tokens = response.usage.input_tokens if response.usage else 0
        output_tokens = response.usage.output_tokens if response.usage else 0
        usage = UsageCost(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=calculate_cost(self.model, input_tokens, output_tokens),
        )

        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.warning(f"{request.section_key}: response truncated at {request.max_tokens} tokens")

        self._log_llm_call(request.section_key, request_data, response_text, "anthropic")
        return GenerationResponse(text=response_text, usage=usage)

    def _call_openai(self, request: GenerationRequest) -> GenerationResponse:
        """Call OpenAI chat completions. Web search is not available on this path."""
        from openai import APIConnectionError, APIError, APIStatusError, OpenAI

        client = OpenAI(api_key=self.api_key)

        if request.web_search:
            logger.info(f"{request.section_key}: web search is only used with Anthropic models")

        request_data = self._request_data(request)
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": request.system},
                    {"role": "user", "content": request.prompt},
                ],
                max_completion_tokens=request.max_tokens,
            )
        except APIStatusError as e:
            self._log_llm_call(request.section_key, request_data, f"[ERROR {e.status_code}: {e.message}]", "openai")
            raise TransportError(request.section_key, f"API error {e.status_code}: {e.message}", status_code=e.status_code) from e
        except APIConnectionError as e:
            raise TransportError(request.section_key, f"Connection failed: {e}") from e
        except APIError as e:
            raise TransportError(request.section_key, str(e)) from e

        if not response.choices:
            self._log_llm_call(request.section_key, request_data, "[ERROR: no choices returned from OpenAI]", "openai")
            raise TransportError(request.section_key, "OpenAI returned no choices")

        choice = response.choices[0]
        response_text = choice.message.content or ""
        if getattr(choice, "finish_reason", None) == "length":
            logger.warning(f"{request.section_key}: response truncated at {request.max_tokens} tokens")

        input_tokens = response.usage.prompt_tokens if response.usage else 0
        output_tokens = response.usage.completion_tokens if response.usage else 0
        usage = UsageCost(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=calculate_cost(self.model, input_tokens, output_tokens),
        )

        self._log_llm_call(request.section_key, request_data, response_text, "openai")
        return GenerationResponse(text=response_text, usage=usage)
