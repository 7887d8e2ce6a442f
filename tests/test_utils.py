from __future__ import annotations

import sys

import pytest
import requests

from hive_setup.core.errors import CommandError
from hive_setup.utils import http
from hive_setup.utils.http import HttpProbe, host_port
from hive_setup.utils.process import CommandRunner


class FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_command_runner_captures_output() -> None:
    result = CommandRunner().run([sys.executable, "-c", "print('hello')"], capture=True)
    assert result.ok
    assert result.stdout.strip() == "hello"


def test_command_runner_raises_on_nonzero_exit() -> None:
    runner = CommandRunner()

    with pytest.raises(CommandError) as excinfo:
        runner.run([sys.executable, "-c", "raise SystemExit(3)"], capture=True)
    assert excinfo.value.returncode == 3

    unchecked = runner.run([sys.executable, "-c", "raise SystemExit(3)"], check=False, capture=True)
    assert unchecked.returncode == 3


def test_command_runner_missing_executable() -> None:
    with pytest.raises(CommandError) as excinfo:
        CommandRunner().run(["definitely-not-a-real-binary-hive"], check=False)
    assert excinfo.value.returncode == 127


def test_http_probe_status(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[tuple[str, float]] = []

    def fake_get(url: str, timeout: float) -> FakeResponse:
        seen.append((url, timeout))
        return FakeResponse(200)

    monkeypatch.setattr(http.requests, "get", fake_get)
    probe = HttpProbe(timeout=0.5)

    assert probe.is_healthy("http://localhost:8000/api/v2/heartbeat")
    assert seen == [("http://localhost:8000/api/v2/heartbeat", 0.5)]


def test_http_probe_connection_error_is_none(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(url: str, timeout: float) -> FakeResponse:
        raise requests.ConnectionError(f"refused {url}")

    monkeypatch.setattr(http.requests, "get", refuse)

    assert HttpProbe().status("http://localhost:11434/api/tags") is None


def test_host_port_defaults() -> None:
    assert host_port("http://localhost:8000/api") == ("localhost", 8000)
    assert host_port("https://example.com/health") == ("example.com", 443)
    assert host_port("http://grafana/api/health") == ("grafana", 80)
