import json

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from pixelpulse import app as app_module


class FakeRedis:
    def __init__(self, fail=False):
        self.lists = {}
        self.fail = fail

    def rpush(self, key, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.lists.setdefault(key, []).append(value)

    def ping(self):
        if self.fail:
            raise ConnectionError("redis down")
        return True


@pytest.fixture
def fake(monkeypatch):
    r = FakeRedis()
    monkeypatch.setattr(app_module, "r", r)
    return r


@pytest.fixture
def client():
    return TestClient(app_module.app)


BODY = {"t": "rage", "p": {"selector": "#pay"}, "ts": 1700000000000,
        "url": "https://shop.example.com/", "session": "s1", "page": "p1", "token": "tok"}


def test_ingest_queues_row(fake, client):
    resp = client.post("/pp", json=BODY)
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    (raw,) = fake.lists["events"]
    row = json.loads(raw)
    assert row == {"type": "rage", "props": {"selector": "#pay"}, "url": "https://shop.example.com/",
                   "session": "s1", "page": "p1", "ts": 1700000000000, "token": "tok"}


def test_ingest_accepts_beacon_blob(fake, client):
    resp = client.post("/pp", content=json.dumps(BODY), headers={"Content-Type": "text/plain"})
    assert resp.status_code == 200
    assert len(fake.lists["events"]) == 1


def test_ingest_rejects_invalid(fake, client):
    assert client.post("/pp", json={"p": {}}).status_code == 400
    assert client.post("/pp", content=b"not json").status_code == 400
    assert client.post("/pp", json={"t": "rage"}).json() == {"error": "Invalid payload"}
    assert fake.lists == {}


def test_storage_failure_never_breaks_client(monkeypatch, client):
    monkeypatch.setattr(app_module, "r", FakeRedis(fail=True))
    resp = client.post("/pp", json=BODY)
    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    assert "warning" in resp.json()


def test_cors_preflight(client):
    resp = client.options("/pp", headers={
        "Origin": "https://customer.example.org",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "Content-Type",
    })
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"


def test_health(fake, client):
    assert client.get("/health").json() == {"ok": True, "service": "pixelpulse-collector", "redis": True}


def test_insights_endpoint(monkeypatch, client):
    rows = [{"type": "rage", "props": {"selector": "#pay"}, "url": "u", "session": f"s{i}",
             "page": "p", "ts": 1700000000000, "token": None, "created_at": None} for i in range(6)]
    monkeypatch.setattr(app_module, "load_events", lambda days, token: pd.DataFrame(rows))
    body = client.get("/insights?days=7").json()
    assert body["events"] == 6
    assert body["insights"][0]["severity"] == "medium"
    assert "#pay" in body["insights"][0]["summary"]


def test_insights_endpoint_failure(monkeypatch, client):
    def broken(days, token):
        raise OSError("parquet dir unreadable")

    monkeypatch.setattr(app_module, "load_events", broken)
    resp = client.get("/insights")
    assert resp.status_code == 500
    assert resp.json()["insights"] == []


def test_top_clicks_endpoint(monkeypatch, client):
    rows = [{"type": "click", "props": {"selector": "#buy"}, "session": "s", "ts": 1}] * 3
    monkeypatch.setattr(app_module, "load_events", lambda days, token: pd.DataFrame(rows))
    assert client.get("/clicks/top").json() == {"rows": [{"selector": "#buy", "count": 3}]}


def test_ingest_tolerates_null_optional_fields(fake, client):
    for key in ("p", "url", "session", "page"):
        body = dict(BODY, **{key: None})
        assert client.post("/pp", json=body).status_code == 200, key
    rows = [json.loads(raw) for raw in fake.lists["events"]]
    assert rows[0]["props"] == {}
    assert rows[1]["url"] == ""
    assert rows[2]["session"] == ""
    assert rows[3]["page"] == ""


def test_ingest_rejects_unknown_event_type(fake, client):
    resp = client.post("/pp", json=dict(BODY, t="keystroke"))
    assert resp.status_code == 400
    assert fake.lists == {}
