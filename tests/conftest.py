import pytest

from risk_link.core.config import get_settings
from risk_link.core.telemetry import TelemetryStore


class FakeSleep:
    """대기하지 않고 요청된 대기 시간만 기록"""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DUCKDB_PATH", str(tmp_path / "telemetry.duckdb"))
    monkeypatch.setenv("API_KEY", "test-key")
    monkeypatch.setenv("API_BASE_URL", "https://assessment.test/api")
    monkeypatch.setenv("BASE_DELAY", "0")
    monkeypatch.setenv("INTER_PAGE_DELAY", "0")
    get_settings.cache_clear()
    TelemetryStore.reset()
    yield
    TelemetryStore.reset()
    get_settings.cache_clear()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
