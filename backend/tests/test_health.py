import time

from student_records.database import dispose_engine, get_engine
from student_records.errors import DatabaseConnectionError
from student_records.routes import health


def test_health(client, monkeypatch):
    def unreachable():
        raise AssertionError("liveness check must not touch the database")

    monkeypatch.setattr(health, "get_engine", unreachable)

    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["timestamp"]
    assert body["uptime"] >= 0


def test_deep_health_ok(client):
    resp = client.get("/health/deep")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["checks"] == {"database": "ok"}


def test_deep_health_connection_failure(client, monkeypatch):
    def broken():
        raise DatabaseConnectionError("Could not resolve database credentials")

    monkeypatch.setattr(health, "get_engine", broken)

    resp = client.get("/health/deep")

    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] == "degraded"
    assert body["checks"] == {"database": "error"}


def test_deep_health_unreachable_mysql(client, monkeypatch):
    # Nothing listens on port 1, so the connect is refused.
    monkeypatch.setenv("DATABASE_URL", "mysql+pymysql://root@127.0.0.1:1/student_records")
    dispose_engine()

    started = time.monotonic()
    resp = client.get("/health/deep")

    assert resp.status_code == 503
    assert resp.json()["checks"]["database"] == "error"
    assert time.monotonic() - started < health.CONNECT_TIMEOUT_SECONDS + 1


def test_deep_health_connect_timeout(client, monkeypatch):
    engine = get_engine()

    def slow_engine():
        time.sleep(0.5)
        return engine

    monkeypatch.setattr(health, "CONNECT_TIMEOUT_SECONDS", 0.05)
    monkeypatch.setattr(health, "get_engine", slow_engine)

    resp = client.get("/health/deep")

    assert resp.status_code == 503
    assert resp.json()["status"] == "degraded"


def test_deep_health_query_timeout(client, monkeypatch):
    def slow_ping(connection):
        time.sleep(0.5)
        connection.close()

    monkeypatch.setattr(health, "QUERY_TIMEOUT_SECONDS", 0.05)
    monkeypatch.setattr(health, "_ping", slow_ping)

    resp = client.get("/health/deep")

    assert resp.status_code == 503
    assert resp.json()["checks"] == {"database": "error"}
