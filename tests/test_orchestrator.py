"""
Integration tests for the voice orchestrator.
"""

import pytest

from coach_voice.config_models import VoiceConfig
from coach_voice.models.data_models import FallbackMode, PermissionState
from coach_voice.orchestrator import VoiceOrchestrator
from coach_voice.providers import StaticEnvironmentProbe
from coach_voice.utils.state_machine import SessionState


@pytest.fixture
def orchestrator(recognition_engine, synthesis_engine, probe, store, timers, clock):
    voice = VoiceOrchestrator(
        recognition_engine,
        synthesis_engine,
        probe,
        store=store,
        config=VoiceConfig(),
        timer_factory=timers,
        clock=clock,
    )
    yield voice
    voice.dispose()


class TestModeGating:

    @pytest.mark.asyncio
    async def test_full_voice(self, orchestrator, recognition_engine, synthesis_engine, recorder):
        on_result = recorder()
        await orchestrator.initialize()

        assert orchestrator.mode == FallbackMode.NONE
        assert await orchestrator.start_listening(on_result=on_result) is True
        recognition_engine.say_final("I'd start with the customer problem")
        utterance = orchestrator.speak("Good. What happened next?")

        assert on_result.count == 1
        assert synthesis_engine.spoken == [utterance]

    @pytest.mark.asyncio
    async def test_partial_mode_speaks_but_does_not_listen(self, orchestrator, recognition_engine, synthesis_engine):
        recognition_engine.available = False
        await orchestrator.initialize()

        assert orchestrator.mode == FallbackMode.PARTIAL
        assert await orchestrator.start_listening() is False
        assert recognition_engine.started_sessions == []
        assert orchestrator.speak("Type your answer below") is not None

    @pytest.mark.asyncio
    async def test_first_start_asks_for_the_microphone(
        self, recognition_engine, synthesis_engine, store, timers, clock, recorder
    ):
        probe = StaticEnvironmentProbe(permission=PermissionState.PROMPT, prompt_response=PermissionState.GRANTED)
        voice = VoiceOrchestrator(recognition_engine, synthesis_engine, probe, store=store,
                                  timer_factory=timers, clock=clock)
        on_result = recorder()
        await voice.initialize()

        assert voice.mode == FallbackMode.PARTIAL
        assert voice.recognition_enabled

        assert await voice.start_listening(on_result=on_result) is True
        recognition_engine.say_final("Ready when you are")

        assert len(probe.streams) == 1
        assert voice.mode == FallbackMode.NONE
        assert voice.recognition.is_listening
        assert on_result.count == 1
        assert not timers['orchestrator-resume'].pending
        voice.dispose()

    @pytest.mark.asyncio
    async def test_refused_prompt_requires_permission(
        self, recognition_engine, synthesis_engine, store, timers, clock
    ):
        probe = StaticEnvironmentProbe(permission=PermissionState.PROMPT, prompt_response=PermissionState.DENIED)
        voice = VoiceOrchestrator(recognition_engine, synthesis_engine, probe, store=store,
                                  timer_factory=timers, clock=clock)
        await voice.initialize()

        assert await voice.start_listening() is False

        assert voice.mode == FallbackMode.PERMISSION_REQUIRED
        assert not voice.recognition_enabled
        assert recognition_engine.started_sessions == []
        voice.dispose()

    @pytest.mark.asyncio
    async def test_text_mode_disables_everything(self, orchestrator, recognition_engine, synthesis_engine):
        await orchestrator.initialize()
        await orchestrator.start_listening()
        utterance = orchestrator.speak("A long question about teamwork")

        orchestrator.force_text_mode("User prefers typing")

        assert orchestrator.recognition.state == SessionState.IDLE
        assert synthesis_engine.cancelled == [utterance.id]
        assert orchestrator.synthesis.is_idle
        assert orchestrator.speak("Anything else?") is None
        assert await orchestrator.start_listening() is False
        assert await orchestrator.restart_listening() is False

    @pytest.mark.asyncio
    async def test_reset_resumes_requested_listening(self, orchestrator, recognition_engine, timers):
        await orchestrator.initialize()
        await orchestrator.start_listening()
        orchestrator.force_text_mode()

        orchestrator.reset_fallback()
        await timers['orchestrator-resume'].fire()

        assert orchestrator.mode == FallbackMode.NONE
        assert orchestrator.recognition.is_listening
        assert recognition_engine.started_sessions == [1, 2]

    @pytest.mark.asyncio
    async def test_no_resume_after_stop_listening(self, orchestrator, timers):
        await orchestrator.initialize()
        await orchestrator.start_listening()
        orchestrator.force_text_mode()
        orchestrator.stop_listening()

        orchestrator.reset_fallback()

        assert not timers['orchestrator-resume'].pending
        assert orchestrator.recognition.state == SessionState.IDLE


class TestErrorForwarding:

    @pytest.mark.asyncio
    async def test_network_error_retries_and_resumes(self, orchestrator, recognition_engine, timers, recorder):
        on_error = recorder()
        await orchestrator.initialize()
        await orchestrator.start_listening(on_error=on_error)

        recognition_engine.fail('network')

        assert on_error.calls[0].code == 'network'
        assert orchestrator.mode == FallbackMode.RETRY_PENDING
        assert orchestrator.recognition.state == SessionState.IDLE
        assert not timers['recognition-restart'].pending

        await timers['fallback-retry'].fire()
        assert orchestrator.mode == FallbackMode.NONE

        await timers['orchestrator-resume'].fire()
        assert orchestrator.recognition.is_listening
        assert recognition_engine.started_sessions == [1, 2]

    @pytest.mark.asyncio
    async def test_permission_error_leaves_voice_off(self, orchestrator, recognition_engine, timers):
        await orchestrator.initialize()
        await orchestrator.start_listening()

        recognition_engine.fail('not-allowed')

        assert orchestrator.mode == FallbackMode.PERMISSION_REQUIRED
        assert orchestrator.recognition.state == SessionState.IDLE
        assert not timers['fallback-retry'].pending
        assert orchestrator.speak("Can you hear me?") is None

    @pytest.mark.asyncio
    async def test_synthesis_error_is_recorded(self, orchestrator, synthesis_engine):
        await orchestrator.initialize()
        orchestrator.speak("This will fail")

        synthesis_engine.fail('audio-busy')

        state = orchestrator.fallback.get_state()
        assert state.mode == FallbackMode.NONE
        assert state.last_error['context']['component'] == 'synthesis'

    @pytest.mark.asyncio
    async def test_no_speech_keeps_listening_mode(self, orchestrator, recognition_engine, timers):
        await orchestrator.initialize()
        await orchestrator.start_listening()

        recognition_engine.fail('no-speech')

        assert orchestrator.mode == FallbackMode.NONE
        assert orchestrator.recognition.is_active

    @pytest.mark.asyncio
    async def test_user_error_callback_failure_is_contained(self, orchestrator, recognition_engine):
        def broken(error):
            raise RuntimeError("ui bug")

        await orchestrator.initialize()
        await orchestrator.start_listening(on_error=broken)

        recognition_engine.fail('network')

        assert orchestrator.mode == FallbackMode.RETRY_PENDING


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_status(self, orchestrator):
        await orchestrator.initialize()

        status = orchestrator.get_status()

        assert status['initialized'] is True
        assert status['mode'] == 'none'
        assert status['status_message'] == {
            'title': 'Voice Features Active',
            'message': 'All voice features are working normally',
            'severity': 'success',
        }
        assert status['recognition']['state'] == 'IDLE'
        assert status['synthesis']['selected_voice'] == 'Samantha'
        assert status['errors']['total_errors'] == 0

    @pytest.mark.asyncio
    async def test_capability_report(self, orchestrator):
        report = await orchestrator.get_capability_report()

        assert report.status == 'full'

    @pytest.mark.asyncio
    async def test_dispose_releases_everything(self, orchestrator, store):
        await orchestrator.initialize()
        await orchestrator.start_listening()
        orchestrator.speak("Goodbye")

        orchestrator.dispose()

        assert not orchestrator.is_initialized
        assert orchestrator.recognition.state == SessionState.IDLE
        assert orchestrator.synthesis.is_idle
        assert orchestrator.microphone.current_owner is None
        assert store.get(orchestrator.fallback.storage_key) is None

    @pytest.mark.asyncio
    async def test_from_config(self, timers):
        voice = VoiceOrchestrator.from_config(
            VoiceConfig(environment_provider="static"),
            provider_configs={'environment': {'platform': {'name': 'Kiosk', 'mobile': False}}},
            timer_factory=timers,
        )

        state = await voice.initialize()

        assert state.mode == FallbackMode.NONE
        assert await voice.start_listening() is True
        voice.dispose()
