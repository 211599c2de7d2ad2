"""Pruebas de la política de backoff y la derivación de la URL del socket."""

import pytest

from zapdesk.client.websocket import backoff_delay, websocket_url


@pytest.mark.parametrize(
    ("attempt", "expected"),
    [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0), (4, 16.0), (5, 30.0), (12, 30.0), (10_000, 30.0)],
)
def test_backoff_doubles_until_cap(attempt: int, expected: float) -> None:
    assert backoff_delay(attempt) == expected


def test_backoff_matches_millisecond_formula() -> None:
    for attempt in range(40):
        assert backoff_delay(attempt) * 1000 == min(1000 * 2**attempt, 30000)


def test_backoff_rejects_negative_attempts() -> None:
    with pytest.raises(ValueError):
        backoff_delay(-1)


@pytest.mark.parametrize(
    ("base_url", "expected"),
    [
        ("https://painel.example.com", "wss://painel.example.com/ws"),
        ("http://localhost:5000", "ws://localhost:5000/ws"),
        ("http://localhost:5000/api", "ws://localhost:5000/ws"),
    ],
)
def test_websocket_url_follows_page_scheme(base_url: str, expected: str) -> None:
    assert websocket_url(base_url) == expected
