from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import aiohttp
import pytest
from aiohttp import test_utils, web

from pyequip._transport import SheetTransport
from pyequip.client import InventoryClient
from pyequip.config import EquipConfig
from pyequip.exceptions import EquipProtocolError, EquipTransportError
from pyequip.models.commands import StatusUpdate, UpdateStatusCommand
from pyequip.models.equipment import EquipmentStatus

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

FEED = {
    "inventory": [{"ID": "CAM-1", "Nombre": "Cámara", "Estado": "Disponible"}],
    "users": [{"ID": "U7", "Nombre": "Ana", "Tipo": "Residente"}],
}


@contextlib.asynccontextmanager
async def _serve(handler: Handler) -> AsyncIterator[str]:
    app = web.Application()
    app.router.add_route("*", "/macros/s/ABC/exec", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("/macros/s/ABC/exec"))
    finally:
        await server.close()


def _json_handler(seen: list[web.Request], payload: Any = FEED) -> Handler:
    async def handler(request: web.Request) -> web.StreamResponse:
        seen.append(request)
        return web.json_response(payload)

    return handler


def _bytes_handler(body: bytes, *, status: int = 200, content_type: str = "application/json") -> Handler:
    async def handler(request: web.Request) -> web.StreamResponse:
        return web.Response(body=body, status=status, headers={"Content-Type": content_type})

    return handler


@pytest.mark.asyncio
async def test_fetch_feed_sends_key_and_cache_buster() -> None:
    seen: list[web.Request] = []
    async with _serve(_json_handler(seen)) as url, aiohttp.ClientSession() as http:
        transport = SheetTransport(EquipConfig(script_url=url, api_key="secret"), http)
        feed = await transport.fetch_feed()

    (request,) = seen
    assert request.method == "GET"
    assert request.query["key"] == "secret"
    assert request.query["_t"].isdigit()
    assert feed.inventory == FEED["inventory"]
    assert not feed.has_logs


@pytest.mark.asyncio
async def test_fetch_feed_logs_the_request_url_without_the_key(caplog: pytest.LogCaptureFixture) -> None:
    async with _serve(_json_handler([])) as url, aiohttp.ClientSession() as http:
        transport = SheetTransport(EquipConfig(script_url=url, api_key="secret"), http)
        with caplog.at_level(logging.DEBUG, logger="pyequip._transport"):
            await transport.fetch_feed()

    messages = [record.getMessage() for record in caplog.records if record.name == "pyequip._transport"]
    assert any("key=<redacted>" in message for message in messages)
    assert not any("secret" in message for message in messages)


@pytest.mark.asyncio
async def test_fetch_feed_rejects_html_page() -> None:
    page = b"<!DOCTYPE html><html><body>Sign in</body></html>"
    async with _serve(_bytes_handler(page, content_type="text/html")) as url, aiohttp.ClientSession() as http:
        transport = SheetTransport(EquipConfig(script_url=url, api_key="secret"), http)
        with pytest.raises(EquipProtocolError):
            await transport.fetch_feed()


@pytest.mark.asyncio
async def test_fetch_feed_non_200_is_a_transport_error() -> None:
    async with _serve(_bytes_handler(b"Internal error", status=500, content_type="text/plain")) as url:
        async with aiohttp.ClientSession() as http:
            transport = SheetTransport(EquipConfig(script_url=url, api_key="secret"), http)
            with pytest.raises(EquipTransportError) as excinfo:
                await transport.fetch_feed()

    assert not isinstance(excinfo.value, EquipProtocolError)
    assert excinfo.value.status_code == 500
    assert "Internal error" in str(excinfo.value)


@pytest.mark.asyncio
async def test_fetch_feed_rejects_undecodable_body() -> None:
    body = b'{"inventory":[{"Nombre":"\xff\xfe"}],"users":[]}'
    async with _serve(_bytes_handler(body)) as url, aiohttp.ClientSession() as http:
        transport = SheetTransport(EquipConfig(script_url=url, api_key="secret"), http)
        with pytest.raises(EquipProtocolError) as excinfo:
            await transport.fetch_feed()

    assert excinfo.value.status_code == 200


@pytest.mark.asyncio
async def test_fetch_feed_honours_declared_charset() -> None:
    body = '{"inventory":[{"ID":"CAM-1","Nombre":"Cámara"}],"users":[]}'.encode("latin-1")
    async with _serve(_bytes_handler(body, content_type="application/json; charset=latin-1")) as url:
        async with aiohttp.ClientSession() as http:
            transport = SheetTransport(EquipConfig(script_url=url, api_key="secret"), http)
            feed = await transport.fetch_feed()

    assert feed.inventory[0]["Nombre"] == "Cámara"


@pytest.mark.asyncio
async def test_fetch_feed_connection_failure_is_a_transport_error() -> None:
    async with _serve(_json_handler([])) as url:
        pass

    async with aiohttp.ClientSession() as http:
        transport = SheetTransport(EquipConfig(script_url=url, api_key="secret", request_timeout=5), http)
        with pytest.raises(EquipTransportError) as excinfo:
            await transport.fetch_feed()

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_post_command_sends_plain_text_json_body() -> None:
    received: list[tuple[str, str]] = []

    async def handler(request: web.Request) -> web.StreamResponse:
        received.append((request.headers["Content-Type"], await request.text()))
        return web.json_response({"status": "ok"})

    command = UpdateStatusCommand(
        updates=(StatusUpdate(equipment_id="CAM-1", status=EquipmentStatus.AVAILABLE, condition="Devuelto"),)
    )
    async with _serve(handler) as url, aiohttp.ClientSession() as http:
        transport = SheetTransport(EquipConfig(script_url=url, api_key="secret"), http)
        await transport.post_command(command)

    ((content_type, text),) = received
    assert content_type.startswith("text/plain")
    assert json.loads(text) == {
        "key": "secret",
        "action": "UPDATE_STATUS",
        "updates": [{"equipmentId": "CAM-1", "status": "Disponible", "condition": "Devuelto"}],
    }


@pytest.mark.asyncio
async def test_client_sync_reports_undecodable_feed() -> None:
    body = b'{"inventory":[{"Nombre":"\xff\xfe"}],"users":[]}'
    async with _serve(_bytes_handler(body)) as url, aiohttp.ClientSession() as http:
        async with InventoryClient(EquipConfig(script_url=url, api_key="secret"), session=http) as client:
            report = await client.sync()

    assert report.ok is False
    assert report.message.startswith("Error: ")
    assert client.snapshot.equipment == ()
