"""HTTP transport for the spreadsheet script endpoint."""

from __future__ import annotations

import json
import logging
import time
from typing import Protocol

import aiohttp

from pyequip._constants import USER_AGENT
from pyequip._redact import redact_for_log, redact_url
from pyequip.config import EquipConfig
from pyequip.exceptions import EquipApiError, EquipProtocolError, EquipTransportError
from pyequip.models.commands import LogSessionCommand, UpdateStatusCommand, command_body
from pyequip.models.feed import RemoteFeed

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the client.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`SheetTransport`) concrete.
    """

    async def fetch_feed(self) -> RemoteFeed:
        ...

    async def post_command(self, command: UpdateStatusCommand | LogSessionCommand) -> None:
        ...


def _looks_like_html(text: str) -> bool:
    stripped = text.lstrip()
    return stripped.startswith("<") or "<!doctype html" in stripped[:2048].lower()


def parse_feed_text(text: str, *, endpoint: str = "") -> RemoteFeed:
    """Decode a feed body.

    Raises
    ------
    EquipProtocolError
        The body is an HTML page (login redirect, unpublished script) or not
        a JSON object.
    EquipApiError
        The body carries an ``error`` field.
    """
    if _looks_like_html(text):
        raise EquipProtocolError(
            "Received an HTML page instead of data; check that the script is published for anyone",
            endpoint=endpoint,
        )
    try:
        body = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EquipProtocolError(f"Invalid JSON from feed: {text[:200]}", endpoint=endpoint) from exc
    if not isinstance(body, dict):
        raise EquipProtocolError(f"Feed is not a JSON object: {text[:200]}", endpoint=endpoint)

    feed = RemoteFeed.model_validate(body)
    if feed.error is not None:
        raise EquipApiError(f"Feed rejected: {feed.error}", code=feed.error)
    return feed


def _now_ms() -> int:
    return int(time.time() * 1000)


class SheetTransport:
    """Reads the feed with ``GET`` and sends write commands with ``POST``."""

    def __init__(self, config: EquipConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._url = config.resolved_script_url
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def fetch_feed(self) -> RemoteFeed:
        # ``_t`` defeats intermediary caches on the published script.
        params = {"key": self._config.api_key, "_t": str(_now_ms())}
        headers = {"user-agent": USER_AGENT, "accept": "application/json"}

        try:
            async with self._http.get(self._url, params=params, headers=headers, timeout=self._timeout) as resp:
                _logger.debug("GET %s -> HTTP %d", redact_url(str(resp.url)), resp.status)
                raw = await resp.read()
                status = resp.status
                charset = resp.charset or "utf-8"
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise EquipTransportError(f"Feed request failed: {exc}", endpoint=self._url) from exc

        if status != 200:
            raise EquipTransportError(
                f"HTTP {status} from feed: {raw[:200].decode('utf-8', errors='replace')}",
                status_code=status,
                endpoint=self._url,
            )
        try:
            text = raw.decode(charset)
        except (UnicodeDecodeError, LookupError) as exc:
            raise EquipProtocolError(
                f"Feed body is not valid {charset} text: {exc}",
                status_code=status,
                endpoint=self._url,
            ) from exc

        feed = parse_feed_text(text, endpoint=self._url)
        if self._config.api_trace_enabled:
            _logger.debug(
                "Feed: %d inventory rows, %d users, %s logs",
                len(feed.inventory),
                len(feed.users),
                len(feed.logs) if feed.logs is not None else "no",
            )
        return feed

    async def post_command(self, command: UpdateStatusCommand | LogSessionCommand) -> None:
        """Send *command*. The response body is not inspected."""
        body = command_body(command, self._config.api_key)
        # Plain text avoids the CORS preflight the script endpoint rejects.
        headers = {"content-type": "text/plain;charset=utf-8", "user-agent": USER_AGENT}

        if self._config.api_trace_enabled:
            _logger.debug("POST %s %s", command.action, redact_for_log(body))
        try:
            async with self._http.post(
                self._url,
                data=json.dumps(body, ensure_ascii=False),
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                # The script answers 200 or a redirect whatever happened; only
                # a failed round trip counts as a failed write.
                _logger.debug("%s delivered (HTTP %d)", command.action, resp.status)
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise EquipTransportError(f"{command.action} request failed: {exc}", endpoint=self._url) from exc
