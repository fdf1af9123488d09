"""Tests for the meteor-ddp watch command."""

import json
import logging
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
import websockets
from websockets import ServerConnection

from meteor_ddp.__main__ import _parse_param, main, watch
from meteor_ddp.errors import SubscriptionError


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("42", 42),
        ('{"done": false}', {"done": False}),
        ("true", True),
        ("open", "open"),
        ("", ""),
    ],
)
def test_parse_param(raw: str, expected: object):
    assert _parse_param(raw) == expected


def test_main_parses_arguments():
    with (
        patch("meteor_ddp.__main__.configure_logging"),
        patch("meteor_ddp.__main__.watch", new_callable=AsyncMock) as mock_watch,
    ):
        main(
            ["--url", "ws://example.test/websocket", "--version", "pre1", "todos", "7"]
        )

    mock_watch.assert_awaited_once_with(
        "ws://example.test/websocket", "pre1", "todos", [7]
    )


def test_main_passes_log_level():
    with (
        patch("meteor_ddp.__main__.configure_logging") as mock_logging,
        patch("meteor_ddp.__main__.watch", new_callable=AsyncMock),
    ):
        main(["--log-level", "DEBUG", "todos"])

    mock_logging.assert_called_once_with("DEBUG")


def test_main_url_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("METEOR_DDP_URL", "ws://env.test/websocket")
    with (
        patch("meteor_ddp.__main__.configure_logging"),
        patch("meteor_ddp.__main__.watch", new_callable=AsyncMock) as mock_watch,
    ):
        main(["todos"])

    mock_watch.assert_awaited_once_with("ws://env.test/websocket", "1", "todos", [])


def test_main_exits_on_ddp_error():
    with (
        patch("meteor_ddp.__main__.configure_logging"),
        patch(
            "meteor_ddp.__main__.watch",
            new_callable=AsyncMock,
            side_effect=SubscriptionError("403", "Access denied"),
        ),
        pytest.raises(SystemExit) as exc_info,
    ):
        main(["secret"])
    assert exc_info.value.code == 1


def test_main_rejects_unknown_version():
    with pytest.raises(SystemExit):
        main(["--version", "v99", "todos"])


async def test_watch_logs_changes_until_given_up(
    ddp_server: Any, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    monkeypatch.setenv("METEOR_DDP_MAX_RECONNECT_ATTEMPTS", "0")
    caplog.set_level(logging.INFO, logger="meteor_ddp")

    async def handler(ws: ServerConnection) -> None:
        try:
            async for raw in ws:
                msg = json.loads(raw)
                if msg["msg"] == "connect":
                    await ws.send(json.dumps({"msg": "connected", "session": "s1"}))
                elif msg["msg"] == "sub":
                    added = {
                        "msg": "added",
                        "collection": "tasks",
                        "id": "t1",
                        "fields": {"title": "Buy milk"},
                    }
                    await ws.send(json.dumps(added))
                    await ws.send(json.dumps({"msg": "ready", "subs": [msg["id"]]}))
                    return
        except websockets.ConnectionClosed:
            pass

    url = await ddp_server(handler)
    await watch(url, "1", "tasks", [])

    assert 'added tasks/t1 {"title":"Buy milk"}' in caplog.text
    assert "Disconnected" in caplog.text


async def test_watch_raises_when_subscription_refused(ddp_server: Any):
    async def handler(ws: ServerConnection) -> None:
        try:
            async for raw in ws:
                msg = json.loads(raw)
                if msg["msg"] == "sub":
                    error = {"error": "403", "reason": "Access denied"}
                    nosub = {"msg": "nosub", "id": msg["id"], "error": error}
                    await ws.send(json.dumps(nosub))
                elif msg["msg"] == "connect":
                    await ws.send(json.dumps({"msg": "connected", "session": "s1"}))
        except websockets.ConnectionClosed:
            pass

    url = await ddp_server(handler)
    with pytest.raises(SubscriptionError, match="Access denied"):
        await watch(url, "1", "secret", [])
