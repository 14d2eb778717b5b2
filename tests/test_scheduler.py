import asyncio

import pytest

from medinterp.transcript.ledger import DedupLedger
from medinterp.transcript.models import SpeakerRole, segment_key
from medinterp.transcript.scheduler import FinalizationScheduler
from medinterp.transcript.state import SessionState
from medinterp.transcript.timer import DebounceTimer, start_timer

from fakes import ManualTimerFactory

A = SpeakerRole.PROVIDER


@pytest.fixture
def state():
    return SessionState()


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def scheduler(state, timers, emitted):
    sched = FinalizationScheduler(
        state,
        on_entry=emitted.append,
        on_timer_expired=lambda role, timer: sched.timer_expired(role, timer),
        debounce_seconds=1.0,
        timer_factory=timers,
    )
    return sched


def _fill(state, original, translated, role=A):
    buf = state.buffer(role)
    buf.final_original = original
    buf.final_translated = translated
    buf.saw_source_since_reset = True
    return buf


def test_no_timer_without_sentence_end(state, scheduler, timers):
    _fill(state, "Hello world", "Hola mundo")
    assert scheduler.after_update(A) is None
    assert timers.timers == []


def test_debounce_path_requires_more_than_five_chars(state, scheduler, timers):
    _fill(state, "Hey.", "Ola.")
    assert scheduler.after_update(A) is None
    _fill(state, "Hello.", "Hola!")  # 5 chars, not enough
    assert scheduler.after_update(A) is None
    _fill(state, "Hello.", "¡Hola!")
    assert scheduler.after_update(A) is not None


def test_stop_flush_uses_lower_threshold(state, scheduler, emitted):
    _fill(state, "Hey.", "Ola.")
    entry = scheduler.flush(A)
    assert entry is not None
    assert (entry.original_text, entry.translated_text) == ("Hey.", "Ola.")
    _fill(state, "Hi", "Ok")
    assert scheduler.flush(A) is None
    assert len(emitted) == 1


def test_update_cancels_pending_timer_before_rearming(state, scheduler, timers):
    _fill(state, "Hello there.", "Hola allí.")
    first = scheduler.after_update(A)
    second = scheduler.after_update(A)
    assert first.cancelled
    assert timers.active == [second]
    assert state.buffer(A).pending_timer is second


def test_expiry_emits_resets_buffer_and_records_key(state, scheduler, timers, emitted):
    _fill(state, "Hello world.", "Hola mundo.")
    buf = state.buffer(A)
    buf.partial_original = "and"
    scheduler.after_update(A)
    timers.timers[-1].fire()

    assert len(emitted) == 1
    entry = emitted[0]
    assert entry.speaker is A
    assert entry.original_text == "Hello world."
    assert entry.translated_text == "Hola mundo."
    assert entry.is_final
    assert state.entries == [entry]
    assert state.ledger.contains("Hello world.", "Hola mundo.")
    assert buf.final_original == buf.final_translated == buf.partial_original == ""
    assert not buf.saw_source_since_reset
    assert buf.pending_timer is None


def test_flush_then_stale_timer_emits_once(state, scheduler, timers, emitted):
    _fill(state, "I feel dizzy.", "Me siento mareado.")
    timer = scheduler.after_update(A)
    scheduler.flush(A)
    timer.fire()
    scheduler.timer_expired(A, timer)
    assert len(emitted) == 1


def test_same_pair_twice_emits_one_entry(state, scheduler, emitted):
    _fill(state, "Thank you.", "Gracias a usted.")
    assert scheduler.flush(A) is not None
    _fill(state, "  Thank you. ", "Gracias a usted.")
    assert scheduler.flush(A) is None
    assert len(emitted) == 1
    assert len(state.entries) == 1


def test_ledger_is_shared_across_roles(state, scheduler, emitted):
    _fill(state, "Okay then.", "Vale entonces.", role=SpeakerRole.PROVIDER)
    scheduler.flush(SpeakerRole.PROVIDER)
    _fill(state, "Okay then.", "Vale entonces.", role=SpeakerRole.PATIENT)
    assert scheduler.flush(SpeakerRole.PATIENT) is None


def test_key_uses_texts_at_expiry(state, scheduler, timers, emitted):
    _fill(state, "Sit down.", "Siéntese aquí.")
    timer = scheduler.after_update(A)
    state.buffer(A).final_original += " Please."
    timer.fire()
    assert emitted[0].original_text == "Sit down. Please."


def test_ledger_claim_is_check_then_insert():
    ledger = DedupLedger()
    assert ledger.claim(" a ", "b")
    assert not ledger.claim("a", " b ")
    assert ledger.contains("a", "b")
    assert len(ledger) == 1
    ledger.clear()
    assert not ledger.contains("a", "b")


def test_segment_key_sides_do_not_collide():
    assert segment_key("a b", "c") != segment_key("a", "b c")


async def test_debounce_coalesces_quick_sentences(state, emitted):
    sched = FinalizationScheduler(
        state,
        on_entry=emitted.append,
        on_timer_expired=lambda role, timer: sched.timer_expired(role, timer),
        debounce_seconds=0.05,
        timer_factory=start_timer,
    )
    _fill(state, "Hello.", "Saludos.")
    sched.after_update(A)
    await asyncio.sleep(0.02)
    _fill(state, "Hello. Bye.", "Saludos. Adiós.")
    sched.after_update(A)
    assert state.buffer(A).final_original == "Hello. Bye."
    assert emitted == []

    await asyncio.sleep(0.15)
    assert len(emitted) == 1
    assert emitted[0].original_text == "Hello. Bye."
    assert emitted[0].translated_text == "Saludos. Adiós."


async def test_cancelled_debounce_timer_never_fires():
    fired = []
    timer = DebounceTimer(0.01, fired.append).start()
    assert timer.active
    assert timer.deadline is not None
    timer.cancel()
    await asyncio.sleep(0.05)
    assert fired == []
    assert not timer.active
