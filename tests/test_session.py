import asyncio

import pytest

from medinterp.errors import AudioSourceError, SessionStateError, StreamConnectionError
from medinterp.session.events import StreamMessageReceived
from medinterp.session.orchestrator import SessionPhase
from medinterp.transcript.models import SessionConfig, SpeakerRole

from fakes import DEBOUNCE, settle, tok

PROVIDER = SpeakerRole.PROVIDER
PATIENT = SpeakerRole.PATIENT


def _of_type(published, kind):
    return [p for p in published if p["type"] == kind]


async def test_hello_world_scenario(session, factory, published):
    assert await session.start(PROVIDER)
    conn = factory.latest
    assert (conn.role, conn.source_language, conn.target_language) == (PROVIDER, "en", "es")

    for token in [tok("Hello", "en"), tok(" world.", "en"), tok("Hola", "es"), tok(" mundo.", "es")]:
        conn.deliver({"tokens": [token]})
    await settle(session)

    buf = session.state.buffer(PROVIDER)
    assert buf.final_original == "Hello world."
    assert buf.final_translated == "Hola mundo."
    assert buf.pending_timer is not None
    assert _of_type(published, "entry") == []

    await settle(session, DEBOUNCE * 3)
    entries = _of_type(published, "entry")
    assert len(entries) == 1
    entry = entries[0]["entry"]
    assert entry["speaker"] == "provider"
    assert entry["original_text"] == "Hello world."
    assert entry["translated_text"] == "Hola mundo."
    assert entry["is_final"] is True
    assert session.state.ledger.contains("Hello world.", "Hola mundo.")
    assert buf.final_original == ""


async def test_partial_notifications(session, factory, published):
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("My", "en"), tok(" chest", "en", final=False)]})
    await settle(session)
    partial = _of_type(published, "partial")[-1]
    assert partial["speaker"] == "provider"
    assert partial["final_original"] == "My"
    assert partial["partial_original"] == " chest"


async def test_malformed_and_error_messages_leave_state_alone(session, factory, published):
    await session.start(PROVIDER)
    conn = factory.latest
    conn.deliver("{not json")
    conn.deliver({"error": "quota exceeded"})
    await settle(session)
    assert _of_type(published, "partial") == []

    conn.deliver({"tokens": [tok("Still here", "en")]})
    await settle(session)
    assert session.state.buffer(PROVIDER).final_original == "Still here"


async def test_switch_detaches_old_connection_and_keeps_buffers(session, factory):
    await session.start(PROVIDER)
    old = factory.latest
    old.deliver({"tokens": [tok("Where does it", "en")]})
    await settle(session)

    assert session.orchestrator.capturing
    old.close_hook = lambda: session.orchestrator.capturing
    assert await session.switch_speaker(PATIENT)
    new = factory.latest
    assert new is not old
    assert old.detached and old.closed
    assert old.handlers_attached_at_close is False
    assert old.close_hook_result is False
    assert session.orchestrator.capturing
    assert (new.role, new.source_language, new.target_language) == (PATIENT, "es", "en")
    assert session.state.active_role is PATIENT
    assert session.orchestrator.phase is SessionPhase.ACTIVE
    assert session.state.buffer(PROVIDER).final_original == "Where does it"

    assert not old.deliver({"tokens": [tok(" hurt?", "en")]})
    session.post(StreamMessageReceived(old.connection_id, PROVIDER, '{"tokens": [{"text": " hurt?"}]}'))
    new.deliver({"tokens": [tok("Me duele", "es")]})
    await settle(session)
    assert session.state.buffer(PROVIDER).final_original == "Where does it"
    assert session.state.buffer(PATIENT).final_original == "Me duele"


async def test_switch_to_same_role_keeps_connection(session, factory):
    await session.start(PROVIDER)
    assert await session.switch_speaker(PROVIDER)
    assert len(factory.connections) == 1


async def test_switch_while_idle_only_sets_role(session, factory):
    assert await session.switch_speaker(PATIENT) is False
    assert session.state.active_role is PATIENT
    assert factory.connections == []


async def test_switch_reconnect_timeout_continues_degraded(session, factory, published, audio_source):
    await session.start(PROVIDER)
    factory.open_on_connect = False
    assert await session.switch_speaker(PATIENT) is False
    assert session.orchestrator.phase is SessionPhase.ACTIVE
    assert not session.orchestrator.connected
    assert session.orchestrator.capturing
    status = _of_type(published, "status")[-1]
    assert status == {"type": "status", "phase": "active", "connected": False, "active_role": "patient"}

    audio_source.feed(b"lost")
    await asyncio.sleep(0.05)
    assert factory.latest.sent == []


async def test_audio_reaches_open_connection(session, factory, audio_source):
    await session.start(PROVIDER)
    audio_source.feed(b"\x1a\x45\xdf\xa3")
    await asyncio.sleep(0.05)
    assert b"".join(factory.latest.sent) == b"\x1a\x45\xdf\xa3"


async def test_audio_source_failure_keeps_session_idle(session, factory, audio_source):
    audio_source.close()
    with pytest.raises(AudioSourceError):
        await session.start(PROVIDER)
    assert session.orchestrator.phase is SessionPhase.IDLE
    assert factory.connections == []


async def test_start_twice_is_rejected(session):
    await session.start(PROVIDER)
    with pytest.raises(SessionStateError):
        await session.start(PATIENT)
    assert session.orchestrator.phase is SessionPhase.ACTIVE


async def test_stop_flushes_short_unterminated_speech(session, factory, published):
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("Hey.", "en"), tok("Ola.", "es")]})
    await settle(session)
    assert session.state.buffer(PROVIDER).pending_timer is None

    entry = await session.stop()
    assert entry is not None
    assert (entry.original_text, entry.translated_text) == ("Hey.", "Ola.")
    assert session.orchestrator.phase is SessionPhase.IDLE
    assert factory.latest.closed
    await settle(session)
    assert len(_of_type(published, "entry")) == 1
    assert session.state.buffer(PROVIDER).final_original == ""


async def test_stop_after_debounce_does_not_duplicate(session, factory, published):
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("I am fine.", "en"), tok("Estoy bien.", "es")]})
    await settle(session, DEBOUNCE * 3)
    assert len(_of_type(published, "entry")) == 1

    assert await session.stop() is None
    assert len(session.state.entries) == 1
    assert len(session.state.ledger) == 1


async def test_stop_clears_both_buffers_but_keeps_transcript(session, factory):
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("Yes", "en")]})
    await settle(session)
    await session.switch_speaker(PATIENT)
    factory.latest.deliver({"tokens": [tok("Sí, claro que sí.", "es"), tok("Yes, of course.", "en")]})
    await settle(session, DEBOUNCE * 3)
    await session.stop()
    assert session.state.buffer(PROVIDER).final_original == ""
    assert session.state.buffer(PATIENT).final_original == ""
    assert len(session.state.entries) == 1


async def test_stop_while_idle_is_noop(session):
    assert await session.stop() is None


async def test_clear_drops_transcript_and_ledger(session, factory, published):
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("Take a breath.", "en"), tok("Respire hondo.", "es")]})
    await settle(session, DEBOUNCE * 3)
    assert len(session.state.entries) == 1

    await session.clear()
    assert session.state.entries == []
    assert len(session.state.ledger) == 0
    assert published[-1] == {"type": "cleared"}


async def test_config_change_applies_on_next_connect(session, factory):
    await session.start(PROVIDER)
    await session.configure(SessionConfig(provider_language="en", patient_language="fr-FR"))
    assert factory.latest.target_language == "es"
    await session.switch_speaker(PATIENT)
    assert (factory.latest.source_language, factory.latest.target_language) == ("fr", "en")


async def test_connection_loss_is_reported_without_reconnect(session, factory, published):
    await session.start(PROVIDER)
    await settle(session)
    before = len(_of_type(published, "status"))
    factory.latest.fail(StreamConnectionError("reset by peer"))
    await settle(session)
    statuses = _of_type(published, "status")
    assert len(statuses) == before + 1
    status = statuses[-1]
    assert status["connected"] is False
    assert status["phase"] == "active"
    assert len(factory.connections) == 1


async def test_tts_speaks_active_speaker_entries(session, factory, published, speaker):
    await session.configure(SessionConfig(provider_language="en", patient_language="es", tts_enabled=True))
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("Hello world.", "en"), tok("Hola mundo.", "es")]})
    await settle(session, DEBOUNCE * 3)
    await asyncio.sleep(0.02)

    assert speaker.calls == [("Hola mundo.", "es")]
    speech = _of_type(published, "speech")
    assert len(speech) == 1
    entry_id = _of_type(published, "entry")[0]["entry"]["id"]
    assert speech[0] == {"type": "speech", "speaker": "provider", "entry_id": entry_id, "audio": "QUJD", "format": "mp3"}


async def test_tts_skipped_when_disabled(session, factory, speaker):
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("Hello world.", "en"), tok("Hola mundo.", "es")]})
    await settle(session, DEBOUNCE * 3)
    await asyncio.sleep(0.02)
    assert speaker.calls == []


async def test_tts_skipped_for_inactive_speaker(session, factory, speaker):
    await session.configure(SessionConfig(tts_enabled=True))
    await session.start(PROVIDER)
    factory.latest.deliver({"tokens": [tok("Open wide.", "en"), tok("Abra la boca.", "es")]})
    await settle(session)
    await session.switch_speaker(PATIENT)
    await settle(session, DEBOUNCE * 3)
    await asyncio.sleep(0.02)
    assert len(session.state.entries) == 1
    assert speaker.calls == []
