"""Unit tests for the named timer registry."""
import asyncio

from voice_interviewer.services.scheduler import TimerRegistry


def test_timer_fires_once_and_unregisters():
    fired = []

    async def scenario():
        timers = TimerRegistry()
        timers.arm("response", 0.01, lambda: fired.append(timers.is_armed("response")))
        assert timers.armed == ["response"]
        await asyncio.sleep(0.05)
        return timers

    timers = asyncio.run(scenario())
    assert fired == [False]
    assert len(timers) == 0


def test_rearming_cancels_previous_timer():
    fired = []

    async def scenario():
        timers = TimerRegistry()
        timers.arm("turn", 0.01, lambda: fired.append("first"))
        timers.arm("turn", 0.02, lambda: fired.append("second"))
        assert len(timers) == 1
        await asyncio.sleep(0.06)

    asyncio.run(scenario())
    assert fired == ["second"]


def test_clear_and_clear_all():
    fired = []

    async def scenario():
        timers = TimerRegistry()
        timers.arm("a", 0.01, lambda: fired.append("a"))
        timers.arm("b", 0.01, lambda: fired.append("b"))
        timers.arm("c", 0.01, lambda: fired.append("c"))
        assert timers.clear("a")
        assert not timers.clear("a")
        assert timers.clear_all() == 2
        await asyncio.sleep(0.03)
        return timers

    timers = asyncio.run(scenario())
    assert fired == []
    assert timers.armed == []
