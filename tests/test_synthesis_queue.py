"""
Tests for the speech synthesis queue.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from coach_voice.config_models import SynthesisConfig
from coach_voice.models.data_models import ErrorCategory, Priority, Utterance
from coach_voice.synthesis import queue as events
from coach_voice.synthesis.queue import SynthesisQueue


@pytest.fixture
def received(queue):
    """Listener events as (name, data) pairs."""
    log = []
    queue.add_listener(lambda event, data: log.append((event, data)))
    return log


def names(log):
    return [event for event, _ in log]


class TestPlayback:

    def test_speak_plays_immediately_when_idle(self, queue, synthesis_engine, received):
        utterance = queue.speak("Hello there")

        assert synthesis_engine.spoken == [utterance]
        assert queue.current is utterance
        assert queue.is_speaking
        assert queue.queue_length == 0
        assert names(received) == [events.QUEUE_CHANGED, events.QUEUE_CHANGED, events.STARTED]

    def test_one_utterance_at_a_time(self, queue, synthesis_engine):
        first = queue.speak("First question")
        second = queue.speak("Second question")

        assert synthesis_engine.spoken == [first]
        assert queue.queued() == [second]

    @pytest.mark.asyncio
    async def test_next_item_after_pause(self, queue, synthesis_engine, timers, received):
        queue.speak("First question")
        second = queue.speak("Second question")

        synthesis_engine.finish()

        next_timer = timers['synthesis-next']
        assert next_timer.delays == [0.3]
        assert queue.current is None
        assert events.ENDED in names(received)

        await next_timer.fire()

        assert queue.current is second
        assert synthesis_engine.spoken[-1] is second

    def test_utterance_defaults(self, queue):
        utterance = queue.speak("Tell me about yourself")

        assert utterance.voice_ref == "Samantha"
        assert utterance.volume == 0.8
        assert utterance.estimated_duration > 0

    def test_empty_text_is_not_queued(self, queue, synthesis_engine):
        assert queue.speak("```\nprint('hi')\n```") is None
        assert queue.enqueue(Utterance(text="   ")) is None
        assert synthesis_engine.spoken == []

    def test_text_is_normalized(self, queue, synthesis_engine):
        queue.speak("**Great** answer! See the [API docs](https://example.com)")

        assert synthesis_engine.spoken[0].text == "Great answer! See the A P I docs"

    def test_auto_play_off_waits_for_play_queued(self, synthesis_engine, timers):
        queue = SynthesisQueue(synthesis_engine, SynthesisConfig(auto_play=False), timer_factory=timers)

        queue.speak("Ready when you are")
        assert synthesis_engine.spoken == []

        queue.play_queued()
        assert len(synthesis_engine.spoken) == 1


class TestQueueBounds:

    def test_overflow_drops_oldest_waiting_item(self, synthesis_engine, timers):
        queue = SynthesisQueue(synthesis_engine, SynthesisConfig(max_queue_size=2), timer_factory=timers)
        playing = queue.speak("A")
        queue.speak("B")
        c = queue.speak("C")
        d = queue.speak("D")

        assert queue.current is playing
        assert queue.queued() == [c, d]

    def test_enqueue_returns_position(self, queue):
        queue.speak("Playing now")

        assert queue.enqueue(Utterance(text="one")) == 1
        assert queue.enqueue(Utterance(text="two")) == 2


class TestInterrupt:

    def test_interrupt_cancels_current_and_keeps_queue(self, queue, synthesis_engine, received):
        a = queue.speak("A long answer about leadership")
        waiting = queue.speak("Queued follow-up")

        b = queue.speak("Stop, let me rephrase", interrupt=True)

        assert synthesis_engine.cancelled == [a.id]
        assert queue.current is b
        assert queue.is_speaking
        assert queue.queued() == [waiting]
        cancelled = [data['utterance'] for event, data in received if event == events.CANCELLED]
        assert cancelled == [a]
        # The engine's "interrupted" error belongs to a stale utterance
        assert events.ERROR not in names(received)

    def test_high_priority_behaves_like_interrupt(self, queue, synthesis_engine):
        a = queue.speak("First")

        urgent = queue.speak("Urgent notice", priority=Priority.HIGH)

        assert synthesis_engine.cancelled == [a.id]
        assert queue.current is urgent

    def test_interrupt_while_idle_plays_at_once(self, queue, synthesis_engine):
        utterance = queue.speak("Hello", interrupt=True)

        assert synthesis_engine.cancelled == []
        assert queue.current is utterance


class TestControls:

    def test_pause_and_resume(self, queue, received):
        assert queue.pause() is False

        queue.speak("Take your time")
        assert queue.pause() is True
        assert queue.is_paused
        assert queue.pause() is False

        assert queue.resume() is True
        assert not queue.is_paused
        assert queue.resume() is False
        assert events.PAUSED in names(received)
        assert events.RESUMED in names(received)

    def test_stop_clears_everything(self, queue, synthesis_engine, timers):
        a = queue.speak("A")
        queue.speak("B")

        queue.stop()

        assert queue.current is None
        assert queue.queue_length == 0
        assert queue.is_idle
        assert synthesis_engine.cancelled == [a.id]
        assert not timers['synthesis-next'].pending

    @pytest.mark.asyncio
    async def test_wait_until_idle(self, queue, synthesis_engine):
        await queue.wait_until_idle()

        queue.speak("Almost done")
        waiter = asyncio.ensure_future(queue.wait_until_idle())
        await asyncio.sleep(0)
        assert not waiter.done()

        synthesis_engine.finish()
        await asyncio.wait_for(waiter, timeout=1)

    def test_configure_validates(self, queue):
        queue.configure(max_queue_size=3)
        assert queue.get_status()['config']['max_queue_size'] == 3

        with pytest.raises(ValueError):
            queue.configure(volume=2.0)


class TestErrors:

    @pytest.mark.asyncio
    async def test_engine_error_is_reported_and_skipped(self, queue, synthesis_engine, timers, received):
        failed = queue.speak("This will fail")
        after = queue.speak("This plays next")

        synthesis_engine.fail('audio-busy')

        errors = [data for event, data in received if event == events.ERROR]
        assert len(errors) == 1
        assert errors[0]['utterance'] is failed
        error = errors[0]['error']
        assert error.category == ErrorCategory.RUNTIME
        assert error.recoverable is True
        assert 'audio-busy' in error.message

        await timers['synthesis-next'].fire()
        assert queue.current is after

    def test_engine_exception_is_reported(self, queue, synthesis_engine, received):
        synthesis_engine.speak = MagicMock(side_effect=RuntimeError("device lost"))

        queue.speak("Hello")

        errors = [data for event, data in received if event == events.ERROR]
        assert errors[0]['error'].message == "device lost"
        assert queue.current is None

    def test_listener_exception_is_contained(self, queue, synthesis_engine):
        queue.add_listener(MagicMock(side_effect=RuntimeError("listener bug")))

        queue.speak("Still works")
        synthesis_engine.finish()

        assert queue.is_idle


class TestVoices:

    def test_refresh_selects_preferred_voice(self, queue):
        assert queue.refresh_voices().name == "Samantha"

    def test_set_voice(self, queue):
        assert queue.set_voice("Daniel") is True
        assert queue.selected_voice.name == "Daniel"
        assert queue.set_voice("Nobody") is False
        assert queue.selected_voice.name == "Daniel"

    def test_available_voices_are_described(self, queue):
        voices = {v.name: v for v in queue.get_available_voices()}

        assert voices["Samantha"].gender == "female"
        assert voices["Daniel"].gender == "male"
        assert voices["Google US English"].quality == "basic"
