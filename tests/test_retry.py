"""Tests for the live summary provider's retry behaviour (client is mocked)."""
from __future__ import annotations

import os
from datetime import datetime
from unittest.mock import MagicMock, patch

import anthropic
import pytest

from perfboard.config import RetryConfig
from perfboard.providers.anthropic_provider import AnthropicProvider
from perfboard.schema import build_daily_metric
from perfboard.summary import FALLBACK_SUMMARY, SUMMARY_SYSTEM, generate_summary

REPLY = '{"executive_summary": ["CPA caiu 10%."], "action_plan": ["Aumente a verba."], "risks": []}'


def _status_error(status_code: int, retry_after: str = None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {"retry-after": retry_after} if retry_after is not None else {}
    exc = anthropic.APIStatusError.__new__(anthropic.APIStatusError)
    exc.status_code = status_code
    exc.response = resp
    exc.message = f"HTTP {status_code}"
    return exc


def _reply(text: str = REPLY):
    msg = MagicMock()
    msg.content = [MagicMock()]
    msg.content[0].text = text
    return msg


def _provider(max_retries: int = 2) -> AnthropicProvider:
    with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
        with patch("anthropic.Anthropic"):
            return AnthropicProvider(
                retry_cfg=RetryConfig(
                    max_api_retries=max_retries,
                    backoff_base_seconds=0.0,
                    backoff_max_seconds=0.0,
                ),
            )


def _days():
    out = []
    for d, spend, purchases in [(1, 100.0, 2), (2, 300.0, 1)]:
        dt = datetime(2024, 3, d, 12)
        out.append(
            build_daily_metric(
                date=dt, date_str=dt.strftime("%d/%m/%Y"), original_date_str=dt.strftime("%d/%m/%Y"),
                weekday="", spend=spend, purchases=purchases,
            )
        )
    return out


def test_missing_api_key_raises():
    with patch.dict(os.environ, {}, clear=True), patch("perfboard.providers.anthropic_provider.load_dotenv"):
        with pytest.raises(EnvironmentError):
            AnthropicProvider()


# ─────────────────────────────────────────────────────────────────────────────
# Summary through the live provider
# ─────────────────────────────────────────────────────────────────────────────


class TestSummaryWithRetries:
    def test_rate_limit_then_success_yields_summary(self):
        p = _provider()
        p.client.messages.create.side_effect = [_status_error(429), _reply()]
        with patch("time.sleep"):
            resp = generate_summary(p, _days(), [])
        assert resp.executive_summary == ["CPA caiu 10%."]
        assert p.client.messages.create.call_count == 2

    def test_persistent_rate_limit_falls_back(self):
        p = _provider(max_retries=2)
        p.client.messages.create.side_effect = _status_error(429)
        with patch("time.sleep") as sleep:
            resp = generate_summary(p, _days(), [])
        assert resp == FALLBACK_SUMMARY
        assert p.client.messages.create.call_count == 3
        assert sleep.call_count == 2

    def test_client_error_falls_back_without_retry(self):
        p = _provider()
        p.client.messages.create.side_effect = _status_error(400)
        with patch("time.sleep") as sleep:
            resp = generate_summary(p, _days(), [])
        assert resp == FALLBACK_SUMMARY
        assert p.client.messages.create.call_count == 1
        sleep.assert_not_called()

    def test_system_prompt_and_model_settings_sent(self):
        p = _provider()
        p.client.messages.create.return_value = _reply()
        generate_summary(p, _days(), [])
        kwargs = p.client.messages.create.call_args.kwargs
        assert kwargs["system"] == SUMMARY_SYSTEM
        assert kwargs["max_tokens"] == 1024
        assert "R$ 400" in kwargs["messages"][0]["content"]


# ─────────────────────────────────────────────────────────────────────────────
# Wait time
# ─────────────────────────────────────────────────────────────────────────────


class TestWait:
    @pytest.mark.parametrize("status", [500, 502, 503, 529])
    def test_server_errors_are_retried(self, status):
        p = _provider()
        p.client.messages.create.side_effect = [_status_error(status), _reply("ok")]
        with patch("time.sleep"):
            assert p.generate("p") == "ok"

    def test_retry_after_header_respected(self):
        p = _provider()
        p.client.messages.create.side_effect = [_status_error(429, retry_after="5"), _reply()]
        with patch("time.sleep") as sleep:
            p.generate("p")
        sleep.assert_called_once_with(5.0)

    def test_zero_retry_after_is_honoured(self):
        p = _provider()
        p.client.messages.create.side_effect = [_status_error(503, retry_after="0"), _reply()]
        with patch("time.sleep") as sleep:
            p.generate("p")
        sleep.assert_called_once_with(0.0)

    def test_unreadable_retry_after_uses_backoff(self):
        assert AnthropicProvider.retry_after(_status_error(429, retry_after="soon")) is None

    def test_backoff_is_capped(self):
        p = _provider()
        p.retry = RetryConfig(backoff_base_seconds=10.0, backoff_max_seconds=15.0)
        assert p.backoff(0) <= 11.0
        assert p.backoff(5) == 15.0

    def test_connection_error_retried_then_raised(self):
        p = _provider(max_retries=1)
        err = anthropic.APIConnectionError(request=MagicMock())
        p.client.messages.create.side_effect = err
        with patch("time.sleep"):
            with pytest.raises(anthropic.APIConnectionError):
                p.generate("p")
        assert p.client.messages.create.call_count == 2
