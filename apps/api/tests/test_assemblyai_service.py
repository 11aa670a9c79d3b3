"""Tests for the AssemblyAI token exchange."""
from __future__ import annotations

import httpx
import pytest

from signal_relay.services import assemblyai


def _mock_client(handler):
    def _build() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 60),
        ("", 60),
        ("abc", 60),
        (0, 60),
        ("0", 60),
        (float("nan"), 60),
        (-5, 1),
        ("0.5", 1),
        (120, 120),
        ("45.9", 45.9),
        ("30.0", 30),
        (100000, 600),
        (float("inf"), 600),
        ("Infinity", 600),
        (float("-inf"), 1),
    ],
)
def test_clamp_token_ttl(raw, expected):
    result = assemblyai.clamp_param(
        raw,
        default=assemblyai.TOKEN_TTL_DEFAULT,
        minimum=assemblyai.TOKEN_TTL_MIN,
        maximum=assemblyai.TOKEN_TTL_MAX,
    )

    assert result == expected


def test_clamp_max_session_duration():
    kwargs = {
        "default": assemblyai.MAX_SESSION_DEFAULT,
        "minimum": assemblyai.MAX_SESSION_MIN,
        "maximum": assemblyai.MAX_SESSION_MAX,
    }

    assert assemblyai.clamp_param(None, **kwargs) == 10800
    assert assemblyai.clamp_param(30, **kwargs) == 60
    assert assemblyai.clamp_param("3600", **kwargs) == 3600
    assert assemblyai.clamp_param(99999, **kwargs) == 10800


@pytest.mark.asyncio
async def test_issue_token_requires_api_key(monkeypatch):
    monkeypatch.setattr(assemblyai.settings, "assemblyai_api_key", "")

    with pytest.raises(assemblyai.TranscriptionConfigError):
        await assemblyai.issue_streaming_token()


@pytest.mark.asyncio
async def test_issue_token_sends_clamped_params_and_key(monkeypatch):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"token": "tmp-token", "expires_in_seconds": 600, "extra": True})

    monkeypatch.setattr(assemblyai.settings, "assemblyai_api_key", "secret-key")
    monkeypatch.setattr(assemblyai, "_build_client", _mock_client(handler))

    result = await assemblyai.issue_streaming_token("9000", None)

    assert result == {"token": "tmp-token", "expires_in_seconds": 600}
    request = seen[0]
    assert request.method == "GET"
    assert request.headers["Authorization"] == "secret-key"
    assert request.url.params["expires_in_seconds"] == "600"
    assert request.url.params["max_session_duration_seconds"] == "10800"


@pytest.mark.asyncio
async def test_issue_token_propagates_upstream_error(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="Invalid API key")

    monkeypatch.setattr(assemblyai.settings, "assemblyai_api_key", "bad-key")
    monkeypatch.setattr(assemblyai, "_build_client", _mock_client(handler))

    with pytest.raises(assemblyai.TranscriptionUpstreamError) as exc:
        await assemblyai.issue_streaming_token()

    assert exc.value.status_code == 401
    assert exc.value.details == "Invalid API key"


@pytest.mark.asyncio
async def test_issue_token_maps_network_failure_to_bad_gateway(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(assemblyai.settings, "assemblyai_api_key", "secret-key")
    monkeypatch.setattr(assemblyai, "_build_client", _mock_client(handler))

    with pytest.raises(assemblyai.TranscriptionUpstreamError) as exc:
        await assemblyai.issue_streaming_token()

    assert exc.value.status_code == 502
    assert "connection refused" in exc.value.details


@pytest.mark.asyncio
async def test_issue_token_forwards_fractional_values_unchanged(monkeypatch):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"token": "tmp-token", "expires_in_seconds": 30})

    monkeypatch.setattr(assemblyai.settings, "assemblyai_api_key", "secret-key")
    monkeypatch.setattr(assemblyai, "_build_client", _mock_client(handler))

    await assemblyai.issue_streaming_token("30.5", float("inf"))

    assert seen[0].url.params["expires_in_seconds"] == "30.5"
    assert seen[0].url.params["max_session_duration_seconds"] == "10800"
