"""Health & Readiness: liveness always up, readiness follows the database."""

import pixnest.infrastructure.database as database


class _StubManager:
    def __init__(self, healthy: bool):
        self.healthy = healthy

    async def health_check(self) -> bool:
        return self.healthy


async def test_liveness(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_ready_when_database_reachable(client, monkeypatch):
    monkeypatch.setattr(database, "db_manager", _StubManager(True))
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"


async def test_not_ready_when_database_down(client, monkeypatch):
    monkeypatch.setattr(database, "db_manager", _StubManager(False))
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 503
    assert res.json()["reason"] == "database_unavailable"
