"""Pruebas del verificador de puertos."""

import socket

import pytest

from zapdesk.ops import port_check


@pytest.fixture(name="busy_port")
def fixture_busy_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
        server.bind(("0.0.0.0", 0))
        server.listen()
        yield server.getsockname()[1]


@pytest.fixture(name="free_port")
def fixture_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("0.0.0.0", 0))
        return probe.getsockname()[1]


def test_bound_port_is_unavailable(busy_port: int, capsys: pytest.CaptureFixture[str]) -> None:
    assert port_check.is_port_available(busy_port) is False
    assert port_check.main([str(busy_port)]) == 1
    assert f"Puerto {busy_port} no disponible" in capsys.readouterr().err


def test_free_port_is_available(free_port: int, capsys: pytest.CaptureFixture[str]) -> None:
    assert port_check.main([str(free_port)]) == 0
    assert f"Puerto {free_port} disponible" in capsys.readouterr().out


def test_mixed_ports_fail_but_report_each(
    busy_port: int, free_port: int, capsys: pytest.CaptureFixture[str]
) -> None:
    assert port_check.main([str(free_port), str(busy_port)]) == 1

    captured = capsys.readouterr()
    assert len(captured.out.splitlines()) == 1
    assert len(captured.err.splitlines()) == 1


def test_defaults_to_backend_ports() -> None:
    assert port_check.parse_args([]).ports == [3000, 5000]
