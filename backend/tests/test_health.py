import psutil
from sqlalchemy import create_engine
from sqlalchemy.exc import ArgumentError

from sitescope.api.deps import get_health_service
from sitescope.repositories.health_repository import HealthRepository
from sitescope.schemas.health import DatabaseStatus, MemoryUsage, SystemInfo
from sitescope.services.health_service import HealthService


class _FakeHealthSource:
    def __init__(self, *, connected: bool = True, raises: bool = False) -> None:
        self._connected = connected
        self._raises = raises

    def check_connection(self) -> DatabaseStatus:
        if self._connected:
            return DatabaseStatus(status="connected", response_time_ms=3)
        return DatabaseStatus(status="disconnected")

    def system_info(self) -> SystemInfo:
        if self._raises:
            raise psutil.AccessDenied()
        return SystemInfo(uptime_seconds=42.5, memory=MemoryUsage(used=50, total=200, percentage=25))


def test_liveness_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["message"] == "SiteScope API is running"
    assert body["version"] == "1.0.0"
    assert body["timestamp"].endswith("Z")


def test_liveness_stays_up_when_database_is_down(client, app):
    app.dependency_overrides[get_health_service] = lambda: HealthService(_FakeHealthSource(connected=False))
    assert client.get("/health").status_code == 200


def test_detailed_health_reports_database_and_memory(client):
    response = client.get("/health/detailed")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Application is healthy"
    data = body["data"]
    assert data["status"] == "ok"
    assert data["database"]["status"] == "connected"
    assert data["database"]["responseTimeMs"] >= 0
    assert set(data["memory"]) == {"used", "total", "percentage"}
    assert data["uptime"] >= 0


def test_detailed_health_returns_503_when_database_disconnected(client, app):
    app.dependency_overrides[get_health_service] = lambda: HealthService(_FakeHealthSource(connected=False))

    response = client.get("/health/detailed")
    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "Error"
    assert body["message"] == "Application is unhealthy"
    assert body["path"] == "/health/detailed"
    assert body["method"] == "GET"
    assert "details" not in body


def test_simple_health_endpoint(client):
    response = client.get("/health/simple")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "ok"
    assert "message" not in body


def test_welcome_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["data"] == {"message": "Welcome to SiteScope API", "version": "1.0.0"}


def test_health_service_reports_ok_with_connected_database():
    result = HealthService(_FakeHealthSource()).perform_health_check()
    assert result.status == "ok"
    assert result.uptime == 42.5
    assert result.memory == MemoryUsage(used=50, total=200, percentage=25)


def test_health_service_reports_error_when_probe_fails():
    result = HealthService(_FakeHealthSource(raises=True)).perform_health_check()
    assert result.status == "error"
    assert result.database is None
    assert result.uptime >= 0


def test_health_repository_reports_disconnected_for_unreachable_database(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'nested' / 'db.sqlite'}")
    try:
        status = HealthRepository(lambda: engine).check_connection()
    finally:
        engine.dispose()
    assert status.status == "disconnected"
    assert status.response_time_ms is None


def test_health_repository_system_info_uses_current_process():
    engine = create_engine("sqlite://")
    try:
        info = HealthRepository(lambda: engine).system_info()
    finally:
        engine.dispose()
    assert info.memory.used > 0
    assert info.memory.total >= info.memory.used
    assert 0 <= info.memory.percentage <= 100
    assert info.uptime_seconds >= 0


def _raise(exc: Exception):
    def _factory():
        raise exc

    return _factory


def test_health_repository_reports_disconnected_when_engine_cannot_be_built():
    assert HealthRepository(_raise(ArgumentError("bad url"))).check_connection().status == "disconnected"
    assert HealthRepository(_raise(ModuleNotFoundError("psycopg"))).check_connection().status == "disconnected"


def test_detailed_health_returns_503_for_unsupported_database_url(make_client):
    client = make_client(database_url="nosuchdialect://db.internal/sitescope")

    response = client.get("/health/detailed")

    assert response.status_code == 503
    assert response.json()["message"] == "Application is unhealthy"


def test_detailed_health_uses_camel_case_keys(client):
    database = client.get("/health/detailed").json()["data"]["database"]
    assert "responseTimeMs" in database
    assert "response_time_ms" not in database
