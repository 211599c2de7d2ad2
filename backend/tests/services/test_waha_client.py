"""Pruebas del cliente WAHA."""

import json

import httpx
import pytest

from zapdesk.services.waha import WahaClient, WahaError, build_webhook_config, format_chat_id


@pytest.mark.parametrize(
    ("phone", "expected"),
    [
        ("(11) 98765-4321", "5511987654321@c.us"),
        ("1133334444", "551133334444@c.us"),
        ("+55 11 98765-4321", "5511987654321@c.us"),
        ("351912345678", "351912345678@c.us"),
    ],
)
def test_format_chat_id(phone: str, expected: str) -> None:
    assert format_chat_id(phone) == expected


def test_webhook_config_carries_api_key_header() -> None:
    config = build_webhook_config("https://hook", "k")

    assert config["customHeaders"] == [{"name": "X-Api-Key", "value": "k"}]
    assert config["events"] == ["message", "message.any", "session.status"]


async def test_send_text_posts_session_in_body() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201, json={"id": "abc"})

    client = WahaClient(
        base_url="http://waha.local/",
        api_key="chave",
        session="default",
        transport=httpx.MockTransport(handler),
    )

    result = await client.send_text("11987654321", "Olá")

    assert result == {"id": "abc"}
    request = captured[0]
    assert str(request.url) == "http://waha.local/api/sendText"
    assert request.headers["X-Api-Key"] == "chave"
    assert json.loads(request.content) == {
        "chatId": "5511987654321@c.us",
        "text": "Olá",
        "session": "default",
    }


async def test_error_status_raises_waha_error() -> None:
    client = WahaClient(
        base_url="http://waha.local",
        api_key="chave",
        session="default",
        transport=httpx.MockTransport(lambda request: httpx.Response(422, text="invalid chat")),
    )

    with pytest.raises(WahaError) as excinfo:
        await client.send_text("11987654321", "Olá")

    assert excinfo.value.status_code == 422
    assert excinfo.value.body == "invalid chat"
