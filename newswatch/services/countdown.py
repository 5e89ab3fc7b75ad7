import asyncio
import logging

logger = logging.getLogger(__name__)


def format_mmss(seconds: int) -> str:
    mins, secs = divmod(max(seconds, 0), 60)
    return f"{mins:02d}:{secs:02d}"


class Countdown:
    """Resend gate: counts down once per interval, unlocks resend at 0 and stops."""

    def __init__(self, seconds: int = 600, interval: float = 1.0):
        self.seconds = seconds
        self.interval = interval
        self.remaining = seconds
        self.can_resend = seconds <= 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def display(self) -> str:
        return format_mmss(self.remaining)

    def tick(self) -> int:
        if self.can_resend:
            return self.remaining
        if self.remaining > 0:
            self.remaining -= 1
        if self.remaining == 0:
            self.can_resend = True
        return self.remaining

    def reset(self) -> None:
        self.remaining = self.seconds
        self.can_resend = self.seconds <= 0

    def start(self) -> None:
        """Reset and run the periodic callback on the current event loop."""
        self.cancel()
        self.reset()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def resume(self) -> None:
        """Continue ticking from the current value without resetting it."""
        self.cancel()
        if not self.can_resend:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while not self.can_resend:
            await asyncio.sleep(self.interval)
            self.tick()
        logger.debug("Countdown reached 0; resend unlocked")
