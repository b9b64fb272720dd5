import json

from fastapi.testclient import TestClient

from envimpact.app import app


def _access_lines(out):
    return [json.loads(line) for line in out.splitlines() if '"latency_ms"' in line]


def test_access_line_emitted_when_enabled(monkeypatch, capsys):
    monkeypatch.setenv("LOGGING_ENABLED", "true")
    with TestClient(app) as client:
        r = client.get("/__health")
    assert r.status_code == 200

    lines = _access_lines(capsys.readouterr().out)
    assert len(lines) == 1
    assert lines[0]["endpoint"] == "/__health"
    assert lines[0]["method"] == "GET"
    assert lines[0]["status"] == 200


def test_no_access_line_by_default(monkeypatch, capsys):
    monkeypatch.delenv("LOGGING_ENABLED", raising=False)
    with TestClient(app) as client:
        client.get("/__health")
    assert _access_lines(capsys.readouterr().out) == []
