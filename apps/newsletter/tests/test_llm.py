"""Tests for the generation client."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from newsletter_agent.errors import CredentialMissing, GenerationError
from newsletter_agent.llm import WEB_SEARCH_TOOL, GenerationRequest, LLMClient, UsageCost, calculate_cost

MODEL = "claude-sonnet-4-20250514"


def _request(**kwargs) -> GenerationRequest:
    defaults = {"section_key": "lead_story", "system": "You write.", "prompt": "Write a story."}
    defaults.update(kwargs)
    return GenerationRequest(**defaults)


def _anthropic_response(*blocks, stop_reason="end_turn"):
    return SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=1000, output_tokens=500),
        stop_reason=stop_reason,
    )


@pytest.fixture
def anthropic_mock(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr("anthropic.Anthropic", MagicMock(return_value=client))
    return client


class TestLLMClient:
    def test_missing_key(self):
        with pytest.raises(CredentialMissing) as exc_info:
            LLMClient(MODEL, None).generate(_request())

        assert exc_info.value.section_key == "lead_story"

    def test_unsupported_model(self):
        with pytest.raises(GenerationError, match="Unsupported model"):
            LLMClient("llama-3", "key").generate(_request())

    def test_joins_text_blocks_and_skips_tool_blocks(self, anthropic_mock):
        anthropic_mock.messages.create.return_value = _anthropic_response(
            SimpleNamespace(type="server_tool_use", id="t1"),
            SimpleNamespace(type="text", text="Headline\n"),
            SimpleNamespace(type="text", text="Body."),
        )

        response = LLMClient(MODEL, "key").generate(_request(web_search=True))

        assert response.text == "Headline\nBody."
        assert response.usage.input_tokens == 1000
        assert response.usage.cost_usd == pytest.approx(0.0105)
        kwargs = anthropic_mock.messages.create.call_args.kwargs
        assert kwargs["tools"] == [WEB_SEARCH_TOOL]
        assert kwargs["system"] == "You write."

    def test_no_tools_without_web_search(self, anthropic_mock):
        anthropic_mock.messages.create.return_value = _anthropic_response(SimpleNamespace(type="text", text="x"))

        LLMClient(MODEL, "key").generate(_request(web_search=False))

        assert "tools" not in anthropic_mock.messages.create.call_args.kwargs

    def test_logs_call_when_configured(self, anthropic_mock, tmp_path):
        anthropic_mock.messages.create.return_value = _anthropic_response(SimpleNamespace(type="text", text="x"))

        LLMClient(MODEL, "key", llm_log_dir=tmp_path).generate(_request())

        logs = list(tmp_path.glob("*_lead_story_anthropic.json"))
        assert len(logs) == 1
        assert json.loads(logs[0].read_text())["response"] == "x"


def test_calculate_cost_unknown_model():
    assert calculate_cost("mystery", 1000, 1000) == 0.0


def test_usage_cost_add():
    total = UsageCost(1, 2, 0.5) + UsageCost(3, 4, 0.25)

    assert total == UsageCost(4, 6, 0.75)
