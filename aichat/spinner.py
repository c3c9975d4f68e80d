"""Terminal progress spinner and running tasks behind one."""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TextIO, TypeVar

from .abort_signal import AbortSignal, wait_abort_signal

T = TypeVar("T")

_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
_MOVE_TO_COLUMN_0 = "\x1b[1G"
_CLEAR_FROM_CURSOR_DOWN = "\x1b[J"
_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"

_TICK = 0.05
_POLL = 0.025


class AbortedError(Exception):
    """Raised when a task run behind a spinner is aborted."""


def _isatty(stream: TextIO) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError, OSError):
        return False


class SpinnerRenderer:
    """Draws spinner frames on a terminal stream; silent when it is not a terminal."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.enabled = _isatty(self.stream)
        self.index = 0
        self.message = ""

    def step(self) -> None:
        """Draw the next frame."""
        if not self.enabled or not self.message:
            return
        frame = _FRAMES[self.index % len(_FRAMES)]
        dots = "." * ((self.index // 5) % 4)
        parts = [_MOVE_TO_COLUMN_0, f"{frame}{self.message}{dots:<3}"]
        if self.index == 0:
            parts.append(_HIDE_CURSOR)
        self.stream.write("".join(parts))
        self.stream.flush()
        self.index += 1

    def set_message(self, message: str) -> None:
        """Replace the message shown next to the spinner."""
        self.clear_message()
        if message:
            self.message = f" {message}"

    def clear_message(self) -> None:
        """Erase the spinner line and show the cursor again."""
        if not self.enabled or not self.message:
            return
        self.message = ""
        self.stream.write(_MOVE_TO_COLUMN_0 + _CLEAR_FROM_CURSOR_DOWN + _SHOW_CURSOR)
        self.stream.flush()


@dataclass(frozen=True)
class _SetMessage:
    message: str


class _Stop:
    pass


_STOP = _Stop()


class Spinner:
    """Handle that sends messages to a running spinner."""

    def __init__(self, message: str = "") -> None:
        self.events: asyncio.Queue[_SetMessage | _Stop] = asyncio.Queue()
        self.task: asyncio.Task[None] | None = None
        self.set_message(message)

    def set_message(self, message: str) -> None:
        self.events.put_nowait(_SetMessage(message))

    def stop(self) -> None:
        self.events.put_nowait(_STOP)


async def _run_spinner(events: asyncio.Queue, renderer: SpinnerRenderer) -> None:
    while True:
        try:
            event = await asyncio.wait_for(events.get(), _TICK)
        except asyncio.TimeoutError:
            try:
                renderer.step()
            except OSError:
                pass
            continue
        if isinstance(event, _SetMessage):
            renderer.set_message(event.message)
        else:
            renderer.clear_message()
            return


def spawn_spinner(message: str, stream: TextIO | None = None) -> Spinner:
    """Start a spinner on the running event loop and return its handle."""
    spinner = Spinner(message)
    renderer = SpinnerRenderer(stream)
    spinner.task = asyncio.get_running_loop().create_task(
        _run_spinner(spinner.events, renderer)
    )
    return spinner


async def _run_abortable_spinner(
    events: asyncio.Queue,
    done: asyncio.Event,
    abort_signal: AbortSignal,
    renderer: SpinnerRenderer,
) -> None:
    while not abort_signal.aborted():
        await asyncio.sleep(_POLL)
        if done.is_set():
            break
        try:
            event = events.get_nowait()
        except asyncio.QueueEmpty:
            pass
        else:
            if isinstance(event, _SetMessage):
                renderer.set_message(event.message)
            else:
                renderer.clear_message()
        renderer.step()
    renderer.clear_message()


def _install_sigint(callback: Callable[[], None]) -> bool:
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, callback)
    except (NotImplementedError, RuntimeError, ValueError):
        return False
    return True


def _remove_sigint() -> None:
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError, ValueError):
        pass


async def abortable_run_with_spinner(
    task: Awaitable[T],
    message: str,
    abort_signal: AbortSignal,
    stream: TextIO | None = None,
) -> T:
    """Await ``task`` while showing a spinner; abort on Ctrl-C or ``abort_signal``.

    When ``stream`` is not a terminal the task is simply awaited.
    """
    renderer = SpinnerRenderer(stream)
    if not renderer.enabled:
        return await task

    spinner = Spinner(message)
    done = asyncio.Event()
    interrupted = False

    def on_sigint() -> None:
        nonlocal interrupted
        interrupted = True
        abort_signal.set_ctrlc()

    installed = _install_sigint(on_sigint)
    work = asyncio.ensure_future(task)
    waiter = asyncio.ensure_future(wait_abort_signal(abort_signal))
    spinner_task = asyncio.ensure_future(
        _run_abortable_spinner(spinner.events, done, abort_signal, renderer)
    )
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        done.set()
        waiter.cancel()
        if not work.done():
            work.cancel()
        if installed:
            _remove_sigint()
        try:
            await spinner_task
        finally:
            await asyncio.gather(work, waiter, return_exceptions=True)

    if work.cancelled():
        raise AbortedError("Aborted!" if interrupted else "Aborted.")
    return work.result()