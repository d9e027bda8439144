import json

import requests

import cli


class _Resp:
    def __init__(self, payload=None, text="", ok=True):
        self._payload = payload
        self.text = text
        self.ok = ok

    def json(self):
        return self._payload


def test_endpoints_passes_filters(monkeypatch, capsys):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        return _Resp([{"id": "redis-3f4e5d6c7b8a-6379"}])

    monkeypatch.setattr(cli.requests, "get", fake_get)
    rc = cli.main(["--api", "http://diag:8095/", "endpoints", "--monitor-type", "collectd/redis"])
    assert rc == 0
    assert calls == [("http://diag:8095/endpoints", {"monitor_type": "collectd/redis"})]
    assert json.loads(capsys.readouterr().out) == [{"id": "redis-3f4e5d6c7b8a-6379"}]


def test_status_prints_text(monkeypatch, capsys):
    monkeypatch.setattr(cli.requests, "get", lambda url, timeout=None: _Resp(text="Observers:\n  docker: running\n"))
    assert cli.main(["status"]) == 0
    assert "docker: running" in capsys.readouterr().out


def test_missing_endpoint_is_error(monkeypatch):
    monkeypatch.setattr(
        cli.requests, "get", lambda url, timeout=None: _Resp({"detail": "Unknown endpoint 'x'."}, ok=False)
    )
    assert cli.main(["endpoint", "x"]) == 1


def test_unreachable_server(monkeypatch, capsys):
    def refuse(url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(cli.requests, "get", refuse)
    assert cli.main(["observers"]) == 1
    assert "Could not reach diagnostic server" in capsys.readouterr().err
