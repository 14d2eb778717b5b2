import pytest

from medinterp.audio.source import ClientAudioSource
from medinterp.config import Settings
from medinterp.session.engine import InterpreterSession

from fakes import DEBOUNCE, FakeConnectionFactory, FakeSpeaker


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SONIOX_API_KEY", "test-key")
    monkeypatch.setenv("TTS_BACKEND", "none")
    monkeypatch.setenv("TTS_EDGE_VOICE", "")
    monkeypatch.setenv("FINALIZE_DEBOUNCE_SECONDS", str(DEBOUNCE))
    monkeypatch.setenv("SWITCH_SETTLE_SECONDS", "0")
    monkeypatch.setenv("RECONNECT_TIMEOUT_SECONDS", "0.1")
    monkeypatch.setenv("RECONNECT_POLL_SECONDS", "0.01")
    monkeypatch.setenv("AUDIO_CHUNK_MS", "10")
    monkeypatch.setenv("PROVIDER_LANGUAGE", "en")
    monkeypatch.setenv("PATIENT_LANGUAGE", "es")
    monkeypatch.setenv("TTS_ENABLED", "false")


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()


@pytest.fixture
def speaker() -> FakeSpeaker:
    return FakeSpeaker()


@pytest.fixture
def published() -> list:
    return []


@pytest.fixture
def audio_source() -> ClientAudioSource:
    return ClientAudioSource(max_bytes=1024)


@pytest.fixture
async def session(settings, factory, speaker, published, audio_source):
    async def publish(payload):
        published.append(payload)

    s = InterpreterSession(
        audio_source,
        publish=publish,
        settings=settings,
        connection_factory=factory,
        speak=speaker,
    )
    s.start_processing()
    yield s
    await s.close()
