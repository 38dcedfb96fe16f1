"""Tests for the roomrelay CLI."""

import pytest
import socketio
from fastapi import FastAPI
from typer.testing import CliRunner

from roomrelay import __version__
from roomrelay.cli import app

runner = CliRunner()


@pytest.fixture
def served(clean_env, monkeypatch):
    """Capture uvicorn.run calls instead of starting a server."""
    calls = []

    def fake_run(asgi_app, **kwargs):
        calls.append((asgi_app, kwargs))

    monkeypatch.setattr("roomrelay.cli.uvicorn.run", fake_run)
    return calls


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"roomrelay {__version__}" in result.output


def test_serves_socketio_app_by_default(served):
    result = runner.invoke(app, [])

    assert result.exit_code == 0, result.output
    assert "✓ roomrelay listening on ws://0.0.0.0:8080/ws" in result.output
    asgi_app, kwargs = served[0]
    assert isinstance(asgi_app, socketio.ASGIApp)
    assert kwargs == {"host": "0.0.0.0", "port": 8080, "log_level": "info"}


def test_options_override_config(served):
    result = runner.invoke(
        app,
        [
            "--host",
            "127.0.0.1",
            "--port",
            "9001",
            "--log-level",
            "debug",
            "--no-socketio",
        ],
    )

    assert result.exit_code == 0, result.output
    asgi_app, kwargs = served[0]
    assert isinstance(asgi_app, FastAPI)
    assert kwargs == {"host": "127.0.0.1", "port": 9001, "log_level": "debug"}


def test_port_from_environment(served, monkeypatch):
    monkeypatch.setenv("PORT", "5005")

    result = runner.invoke(app, ["--no-socketio"])

    assert result.exit_code == 0, result.output
    assert served[0][1]["port"] == 5005


@pytest.mark.parametrize("port", ["0", "70000"])
def test_invalid_port(served, port):
    result = runner.invoke(app, ["--port", port])

    assert result.exit_code == 1
    assert served == []


def test_invalid_log_level(served):
    result = runner.invoke(app, ["--log-level", "chatty"])

    assert result.exit_code == 1
    assert served == []
