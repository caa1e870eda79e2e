"""
Tests for the continuous recognition session.
"""

import asyncio
import logging

import pytest

from coach_voice.config_models import RecognitionConfig
from coach_voice.models.data_models import (
    Classification,
    PermissionState,
    RecognitionAlternative,
    RecognitionEventType,
    RecognitionSegment,
)
from coach_voice.recognition.session import RecognitionSession
from coach_voice.utils.error_handling import PermissionDeniedError
from coach_voice.utils.state_machine import SessionState

OWNER = RecognitionSession.MICROPHONE_OWNER


class TestStartAndStop:
    """Session lifecycle driven by start() and stop()."""

    @pytest.mark.asyncio
    async def test_start_claims_microphone_and_listens(self, session, recognition_engine, microphone, recorder):
        on_start = recorder()

        assert await session.start(on_start=on_start) is True

        assert session.state == SessionState.LISTENING
        assert session.is_listening
        assert on_start.count == 1
        assert microphone.is_held_by(OWNER)
        assert recognition_engine.started_sessions == [1]

    @pytest.mark.asyncio
    async def test_manual_stop_never_restarts(self, session, recognition_engine, microphone, timers, recorder):
        on_end = recorder()
        await session.start(on_end=on_end)

        session.stop()

        assert session.state == SessionState.IDLE
        assert on_end.count == 1
        assert recognition_engine.stop_calls == 1
        assert not timers['recognition-restart'].pending
        assert timers['recognition-restart'].delays == []
        assert microphone.current_owner is None

    @pytest.mark.asyncio
    async def test_trailing_end_after_stop_is_not_a_restart(self, session, recognition_engine, timers, recorder):
        recognition_engine.auto_events = False
        on_end = recorder()
        await session.start(on_end=on_end)
        recognition_engine.emit(RecognitionEventType.START)

        session.stop()
        assert session.state == SessionState.ENDING

        recognition_engine.end()

        assert session.state == SessionState.IDLE
        assert on_end.count == 1
        assert not timers['recognition-restart'].pending
        assert session.get_status()['termination_cause'] is None

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, session, recorder):
        on_end = recorder()
        await session.start(on_end=on_end)

        session.stop()
        session.stop()

        assert on_end.count == 1
        assert session.state == SessionState.IDLE

    def test_stop_before_start_is_harmless(self, session):
        session.stop()
        assert session.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_start_while_active_replaces_callbacks(self, session, recognition_engine, recorder):
        first = recorder()
        second = recorder()
        await session.start(on_result=first)

        assert await session.start(on_result=second) is True
        recognition_engine.say_final("I led the migration")

        assert first.count == 0
        assert second.count == 1
        assert recognition_engine.started_sessions == [1]

    @pytest.mark.asyncio
    async def test_restart_starts_a_new_native_session(self, recognition_engine, microphone, timers, recorder):
        session = RecognitionSession(
            recognition_engine, microphone, RecognitionConfig(settle_delay=0.0), timer_factory=timers
        )
        on_result = recorder()
        await session.start(on_result=on_result)

        assert await session.restart() is True
        recognition_engine.say_final("still listening")

        assert recognition_engine.started_sessions == [1, 2]
        assert session.state == SessionState.LISTENING
        assert on_result.count == 1

    @pytest.mark.asyncio
    async def test_dispose_detaches_from_engine(self, session, recognition_engine):
        await session.start()

        session.dispose()

        assert session.state == SessionState.IDLE
        assert recognition_engine.listener_count == 0


class TestStartFailures:
    """start() reports failures through on_error and returns False."""

    @pytest.mark.asyncio
    async def test_unavailable_engine(self, session, recognition_engine, recorder):
        recognition_engine.available = False
        on_error = recorder()

        assert await session.start(on_error=on_error) is False

        assert on_error.calls[0].code == 'initialization-failure'
        assert on_error.calls[0].recoverable is False
        assert session.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_permission_denied(self, session, probe, microphone, recorder):
        probe.permission = PermissionState.DENIED
        on_error = recorder()
        on_end = recorder()

        assert await session.start(on_error=on_error, on_end=on_end) is False

        assert on_error.calls[0].code == 'permission-denied'
        assert on_error.calls[0].recoverable is False
        assert on_end.count == 1
        assert session.state == SessionState.IDLE
        assert microphone.current_owner is None

    @pytest.mark.asyncio
    async def test_refusal_after_stop_is_not_reported(self, session, probe, microphone, recorder):
        answered = asyncio.Event()

        async def slow_refusal():
            await answered.wait()
            raise PermissionDeniedError("Microphone access denied")

        probe.request_microphone = slow_refusal
        on_error = recorder()
        on_end = recorder()

        pending = asyncio.ensure_future(session.start(on_error=on_error, on_end=on_end))
        await asyncio.sleep(0)
        assert session.state == SessionState.STARTING

        session.stop()
        answered.set()

        assert await pending is False
        assert on_end.count == 1
        assert on_error.count == 0
        assert session.state == SessionState.IDLE
        assert microphone.current_owner is None

    @pytest.mark.asyncio
    async def test_prompt_answered_with_grant(self, session, probe):
        probe.permission = PermissionState.PROMPT

        assert await session.start() is True
        assert probe.permission == PermissionState.GRANTED

    @pytest.mark.asyncio
    async def test_engine_start_exception_releases_microphone(self, session, recognition_engine, microphone, recorder):
        recognition_engine.start_error = RuntimeError("engine exploded")
        on_error = recorder()

        assert await session.start(on_error=on_error) is False

        assert on_error.calls[0].code == 'initialization-failure'
        assert microphone.current_owner is None
        assert session.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_microphone_busy(self, session, microphone, recorder):
        await microphone.acquire("other-component")
        on_error = recorder()

        assert await session.start(on_error=on_error) is False

        assert on_error.calls[0].code == 'audio-capture'
        assert microphone.current_owner == "other-component"


class TestAcceptance:
    """Confidence gating of final segments."""

    @pytest.mark.asyncio
    async def test_filler_above_filler_threshold_is_accepted(self, session, recognition_engine, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)

        recognition_engine.say_final("uh", 0.45)

        assert on_result.count == 1
        result = on_result.calls[0]
        assert result.transcript == "uh"
        assert result.classification == Classification.FILLER
        assert result.is_final

    @pytest.mark.asyncio
    async def test_low_confidence_filler_is_ignored_and_logged(self, session, recognition_engine, recorder, caplog):
        caplog.set_level(logging.INFO, logger="coach_voice")
        on_result = recorder()
        await session.start(on_result=on_result)

        recognition_engine.say_final("uh", 0.30)

        assert on_result.count == 0
        tagged = [r for r in caplog.records if getattr(r, 'event', None) == 'low-confidence-ignored']
        assert len(tagged) == 1
        assert "uh" in tagged[0].getMessage()

    @pytest.mark.asyncio
    async def test_normal_speech_needs_normal_threshold(self, session, recognition_engine, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)

        recognition_engine.say_final("I managed a team", 0.5)
        recognition_engine.say_final("I managed a team of five", 0.6)

        assert [r.transcript for r in on_result.calls] == ["I managed a team of five"]
        assert on_result.calls[0].classification == Classification.NORMAL

    @pytest.mark.asyncio
    async def test_filler_alternative_preferred_over_top_ranked(self, session, recognition_engine, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)

        recognition_engine.say([("the", 0.9), ("um", 0.5)])

        assert on_result.calls[0].transcript == "um"
        assert on_result.calls[0].classification == Classification.FILLER

    @pytest.mark.asyncio
    async def test_interim_results_bypass_the_gate(self, session, recognition_engine, recorder):
        on_result = recorder()
        on_interim = recorder()
        await session.start(on_result=on_result, on_interim=on_interim)

        recognition_engine.say_interim("I think", 0.05)

        assert on_interim.count == 1
        assert on_interim.calls[0].is_final is False
        assert on_result.count == 0

    @pytest.mark.asyncio
    async def test_blank_final_is_ignored(self, session, recognition_engine, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)

        recognition_engine.say_final("   ", 0.99)

        assert on_result.count == 0

    @pytest.mark.asyncio
    async def test_unscored_results_rejected_unless_enabled(self, session, recognition_engine, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)

        recognition_engine.say_final("hello", 0.0)
        assert on_result.count == 0

        session.configure(accept_unscored_results=True)
        recognition_engine.say_final("hello", 0.0)
        assert on_result.count == 1

    @pytest.mark.asyncio
    async def test_strict_preset_raises_thresholds(self, session, recognition_engine, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)

        session.configure(filler_mode="strict")
        recognition_engine.say_final("uh", 0.5)
        recognition_engine.say_final("uh", 0.6)

        assert session.policy.filler_threshold == 0.55
        assert session.policy.normal_threshold == 0.75
        assert on_result.count == 1

    @pytest.mark.asyncio
    async def test_disabled_fillers_use_normal_threshold(self, session, recognition_engine, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)

        session.configure(filler_mode="disabled")
        recognition_engine.say_final("uh", 0.45)

        assert on_result.count == 0

    def test_configure_rejects_inverted_thresholds(self, session):
        with pytest.raises(ValueError):
            session.configure(filler_threshold=0.7)
        with pytest.raises(ValueError):
            session.configure(filler_mode="bogus")
        assert session.policy.filler_threshold == 0.4

    @pytest.mark.asyncio
    async def test_callback_exception_does_not_break_session(self, session, recognition_engine):
        def explode(result):
            raise RuntimeError("consumer bug")

        await session.start(on_result=explode)
        recognition_engine.say_final("first answer")
        recognition_engine.say_final("second answer")

        assert session.state == SessionState.LISTENING


class TestEngineTermination:
    """Automatic restarts and engine errors."""

    @pytest.mark.asyncio
    async def test_engine_end_schedules_restart(self, session, recognition_engine, microphone, timers, recorder):
        on_start = recorder()
        on_end = recorder()
        await session.start(on_start=on_start, on_end=on_end)

        recognition_engine.end()

        restart = timers['recognition-restart']
        assert session.state == SessionState.ENDING
        assert restart.pending
        assert restart.delays == [0.1]
        assert session.restart_count == 1
        assert microphone.current_owner is None

        await restart.fire()

        assert session.state == SessionState.LISTENING
        assert session.restart_count == 0
        assert recognition_engine.started_sessions == [1, 2]
        assert on_start.count == 2
        assert on_end.count == 0

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_restart(self, session, recognition_engine, timers, recorder):
        on_end = recorder()
        await session.start(on_end=on_end)
        recognition_engine.end()

        session.stop()

        assert not timers['recognition-restart'].pending
        assert session.state == SessionState.IDLE
        assert on_end.count == 1

    @pytest.mark.asyncio
    async def test_events_from_abandoned_session_are_ignored(self, session, recognition_engine, timers, recorder):
        on_result = recorder()
        await session.start(on_result=on_result)
        recognition_engine.end()
        await timers['recognition-restart'].fire()

        stale = RecognitionSegment([RecognitionAlternative("old words", 0.99)], is_final=True)
        recognition_engine.emit(RecognitionEventType.RESULT, session_id=1, segments=[stale])
        recognition_engine.emit(RecognitionEventType.END, session_id=1)

        assert on_result.count == 0
        assert session.state == SessionState.LISTENING

    @pytest.mark.asyncio
    async def test_restart_budget_is_bounded(self, recognition_engine, microphone, timers, recorder):
        session = RecognitionSession(
            recognition_engine, microphone, RecognitionConfig(max_auto_restarts=2), timer_factory=timers
        )
        recognition_engine.auto_events = False
        on_error = recorder()
        on_end = recorder()
        await session.start(on_error=on_error, on_end=on_end)

        recognition_engine.end()
        await timers['recognition-restart'].fire()
        recognition_engine.end()
        await timers['recognition-restart'].fire()
        recognition_engine.end()

        assert session.state == SessionState.IDLE
        assert not timers['recognition-restart'].pending
        assert [e.code for e in on_error.calls] == ['service-unavailable']
        assert on_error.calls[0].recoverable is True
        assert on_end.count == 1

    @pytest.mark.asyncio
    async def test_no_restart_when_disabled(self, recognition_engine, microphone, timers, recorder):
        session = RecognitionSession(
            recognition_engine, microphone, RecognitionConfig(auto_restart=False), timer_factory=timers
        )
        on_end = recorder()
        await session.start(on_end=on_end)

        recognition_engine.end()

        assert session.state == SessionState.IDLE
        assert on_end.count == 1
        assert not timers['recognition-restart'].pending

    @pytest.mark.asyncio
    async def test_recoverable_error_then_end_restarts(self, session, recognition_engine, microphone, timers, recorder):
        on_error = recorder()
        await session.start(on_error=on_error)

        recognition_engine.fail('network')

        assert on_error.calls[0].code == 'network'
        assert on_error.calls[0].recoverable is True
        assert session.state == SessionState.ENDING
        assert microphone.current_owner is None

        recognition_engine.end()
        assert timers['recognition-restart'].pending

    @pytest.mark.asyncio
    async def test_non_recoverable_error_goes_idle(self, session, recognition_engine, timers, recorder):
        on_error = recorder()
        on_end = recorder()
        await session.start(on_error=on_error, on_end=on_end)

        recognition_engine.fail('not-allowed')

        assert on_error.calls[0].code == 'permission-denied'
        assert session.state == SessionState.IDLE
        assert recognition_engine.abort_calls == 1
        assert session.restart_count == 0
        assert not timers['recognition-restart'].pending
        assert on_end.count == 1

    @pytest.mark.asyncio
    async def test_no_match_keeps_listening(self, session, recognition_engine, recorder):
        on_error = recorder()
        await session.start(on_error=on_error)

        recognition_engine.no_match()

        assert on_error.calls[0].code == 'no-match'
        assert session.state == SessionState.LISTENING

    @pytest.mark.asyncio
    async def test_abort_notice_is_not_reported(self, session, recognition_engine, recorder):
        on_error = recorder()
        await session.start(on_error=on_error)

        recognition_engine.fail('aborted')

        assert on_error.count == 0

    @pytest.mark.asyncio
    async def test_unknown_error_code_is_terminal(self, session, recognition_engine, recorder):
        on_error = recorder()
        await session.start(on_error=on_error)

        recognition_engine.fail('bad-grammar', 'grammar rejected')

        error = on_error.calls[0]
        assert error.recoverable is False
        assert error.message == "Speech recognition error: grammar rejected"
        assert session.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_status_reports_history(self, session):
        await session.start()

        status = session.get_status()

        assert status['state'] == 'LISTENING'
        assert status['is_listening'] is True
        assert status['history'] == ['IDLE->STARTING:start', 'STARTING->LISTENING:engine-start']
