import asyncio

from newswatch.services import Countdown, format_mmss


def test_format_mmss():
    assert format_mmss(600) == "10:00"
    assert format_mmss(59) == "00:59"
    assert format_mmss(0) == "00:00"
    assert format_mmss(-5) == "00:00"


def test_tick_counts_down_and_unlocks_resend():
    countdown = Countdown(seconds=3)
    assert not countdown.can_resend
    assert countdown.tick() == 2
    assert countdown.tick() == 1
    assert not countdown.can_resend
    assert countdown.tick() == 0
    assert countdown.can_resend
    # Stays at zero once unlocked
    assert countdown.tick() == 0


def test_reset_restores_full_duration():
    countdown = Countdown(seconds=2)
    countdown.tick()
    countdown.tick()
    countdown.reset()
    assert countdown.remaining == 2
    assert not countdown.can_resend


def test_zero_length_countdown_allows_resend_immediately():
    assert Countdown(seconds=0).can_resend


async def test_start_runs_to_zero():
    countdown = Countdown(seconds=3, interval=0.01)
    countdown.start()
    assert countdown.running
    await asyncio.sleep(0.2)
    assert countdown.remaining == 0
    assert countdown.can_resend
    assert not countdown.running


async def test_cancel_stops_ticking():
    countdown = Countdown(seconds=100, interval=0.01)
    countdown.start()
    await asyncio.sleep(0.05)
    countdown.cancel()
    stopped_at = countdown.remaining
    await asyncio.sleep(0.05)
    assert countdown.remaining == stopped_at
    assert not countdown.running


async def test_resume_keeps_remaining_time():
    countdown = Countdown(seconds=100, interval=10)
    countdown.tick()
    countdown.tick()
    countdown.resume()
    assert countdown.running
    assert countdown.remaining == 98
    countdown.cancel()


async def test_resume_after_unlock_does_not_start():
    countdown = Countdown(seconds=1, interval=10)
    countdown.tick()
    countdown.resume()
    assert not countdown.running
