"""Shared fixtures for reqrun tests."""

import json
import logging

import pytest
import requests
from click.testing import CliRunner
from requests.structures import CaseInsensitiveDict

from reqrun import profiles
from reqrun.executor import ResponseResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_reqrun_logger():
    """Drop handlers the CLI attached so they do not outlive the test."""
    yield
    logger = logging.getLogger("reqrun")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture(autouse=True)
def global_reqrun_dir(tmp_path, monkeypatch):
    """Point the default profile file at a temp location."""
    fake_global = tmp_path / "fake_home" / ".reqrun"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(profiles, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(profiles, "GLOBAL_PROFILES", fake_global / "profiles.yaml")
    monkeypatch.delenv(profiles.CONFIG_ENV_VAR, raising=False)
    return fake_global


def make_response(status_code=200, body=b"", headers=None, reason=None):
    """Build a requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status_code
    resp.reason = reason if reason is not None else ("OK" if status_code < 400 else "Error")
    resp.headers = CaseInsensitiveDict(headers or {})
    if isinstance(body, dict | list):
        body = json.dumps(body).encode()
    elif isinstance(body, str):
        body = body.encode()
    resp._content = body
    resp._content_consumed = True
    return resp


def make_result(status_code=200, body=b"", headers=None, reason="OK"):
    """Factory for ResponseResult objects handed to the renderer."""
    r = ResponseResult()
    r.status_code = status_code
    r.reason = reason
    r.headers = headers or {}
    r.content = body.encode() if isinstance(body, str) else body
    r.elapsed_ms = 42.0
    r.attempts = 1
    return r


class FakeTransport:
    """Stands in for reqrun.builder.Transport; replays one scripted outcome."""

    def __init__(self, outcome, timeout=30, verify_tls=True):
        self.outcome = outcome
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.sent = []
        self.closed = False

    def send(self, prepared):
        self.sent.append(prepared)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def close(self):
        self.closed = True


class ScriptedBuild:
    """Build function returning a fresh FakeTransport per call from a script.

    Each item of outcomes is a requests.Response or an exception to raise
    from send().
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.configs = []
        self.transports = []

    def __call__(self, config):
        self.configs.append(config)
        transport = FakeTransport(self.outcomes.pop(0), timeout=config.timeout)
        self.transports.append(transport)
        return object(), transport

    @property
    def calls(self):
        return len(self.configs)


@pytest.fixture
def write_profiles(global_reqrun_dir):
    """Write a profiles.yaml with the given mapping and return its path."""
    import yaml

    def _write(data, path=None):
        target = path or (global_reqrun_dir / "profiles.yaml")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(yaml.safe_dump({"profiles": data}))
        return target

    return _write
