import pytest

from wingman.config import load_settings


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(monkeypatch):
    for name in ("GEMINI_MODEL", "GEMINI_MODEL_EXTRACTION", "GEMINI_MODEL_MODERATION", "GEMINI_MODEL_REPLIES", "FRONTEND_DIR"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return load_settings()
