"""Watch a DDP subscription and log every change to its collections."""

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from typing import Any

from meteor_ddp import environment
from meteor_ddp.client import DDPClient
from meteor_ddp.errors import DDPError, ProtocolVersionError
from meteor_ddp.listeners import DDPCallback
from meteor_ddp.logging import configure_logging
from meteor_ddp.protocol import SUPPORTED_VERSIONS

log = logging.getLogger(__name__)


class _Watcher(DDPCallback):
    def __init__(self) -> None:
        self.done = asyncio.Event()

    def on_connect(self) -> None:
        log.info("Connected")

    def on_disconnect(self, code: int, reason: str) -> None:
        log.warning("Disconnected (%s %s)", code, reason)
        self.done.set()

    def on_exception(self, error: Exception) -> None:
        log.error("DDP error: %s", error)
        if isinstance(error, ProtocolVersionError):
            self.done.set()

    def on_data_added(
        self, collection: str | None, document_id: str | None, fields_json: str | None
    ) -> None:
        log.info("added %s/%s %s", collection, document_id, fields_json or "{}")

    def on_data_changed(
        self,
        collection: str | None,
        document_id: str | None,
        fields_json: str | None,
        cleared_json: str | None,
    ) -> None:
        log.info(
            "changed %s/%s %s cleared=%s",
            collection,
            document_id,
            fields_json or "{}",
            cleared_json or "[]",
        )

    def on_data_removed(self, collection: str | None, document_id: str | None) -> None:
        log.info("removed %s/%s", collection, document_id)


def _parse_param(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return value


async def watch(url: str, version: str, name: str, params: list[Any]) -> None:
    watcher = _Watcher()
    client = DDPClient(url, version)
    client.set_callback(watcher)
    async with client:
        sub_id = await client.subscribe_async(name, params)
        log.info("Subscription %s (%s) is ready", name, sub_id)
        await watcher.done.wait()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="meteor-ddp", description="Log the changes published by a subscription."
    )
    parser.add_argument(
        "--url",
        default=environment.get_str("URL", "ws://localhost:3000/websocket"),
        help="websocket URL of the DDP server (default: $METEOR_DDP_URL)",
    )
    parser.add_argument(
        "--version",
        default=SUPPORTED_VERSIONS[0],
        choices=SUPPORTED_VERSIONS,
        help="preferred DDP protocol version",
    )
    parser.add_argument(
        "--log-level",
        help="logging level name (default: $METEOR_DDP_LOG_LEVEL, or INFO)",
    )
    parser.add_argument("subscription", help="name of the publication")
    parser.add_argument(
        "params", nargs="*", help="subscription parameters, parsed as JSON if possible"
    )
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    params = [_parse_param(p) for p in args.params]
    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(watch(args.url, args.version, args.subscription, params))
    except DDPError as e:
        log.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
