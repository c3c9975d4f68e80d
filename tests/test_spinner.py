import asyncio
import io

import pytest

from aichat.abort_signal import create_abort_signal
from aichat.spinner import (
    AbortedError,
    Spinner,
    SpinnerRenderer,
    abortable_run_with_spinner,
    spawn_spinner,
)

HIDE = "\x1b[?25l"
SHOW = "\x1b[?25h"


class TtyBuffer(io.StringIO):
    def isatty(self):
        return True


def test_renderer_silent_when_not_terminal():
    out = io.StringIO()
    renderer = SpinnerRenderer(out)
    renderer.set_message("Generating")
    renderer.step()
    renderer.clear_message()
    assert out.getvalue() == ""


def test_first_step_draws_frame_and_hides_cursor():
    out = TtyBuffer()
    renderer = SpinnerRenderer(out)
    renderer.set_message("Generating")
    renderer.step()
    text = out.getvalue()
    assert "⠋ Generating" in text
    assert text.endswith(HIDE)


def test_later_steps_cycle_frames_without_hiding_again():
    out = TtyBuffer()
    renderer = SpinnerRenderer(out)
    renderer.set_message("Work")
    renderer.step()
    first_len = len(out.getvalue())
    renderer.step()
    second = out.getvalue()[first_len:]
    assert "⠙ Work" in second
    assert HIDE not in second
    for _ in range(9):
        renderer.step()
    assert out.getvalue().count("⠋ Work") == 2


def test_dots_grow_after_five_steps():
    out = TtyBuffer()
    renderer = SpinnerRenderer(out)
    renderer.set_message("Work")
    for _ in range(6):
        renderer.step()
    assert "⠴ Work.  " in out.getvalue()


def test_clear_message_shows_cursor_and_stops_drawing():
    out = TtyBuffer()
    renderer = SpinnerRenderer(out)
    renderer.set_message("Work")
    renderer.step()
    renderer.clear_message()
    assert out.getvalue().endswith(SHOW)
    assert renderer.message == ""
    before = out.getvalue()
    renderer.step()
    assert out.getvalue() == before


def test_clear_without_message_writes_nothing():
    out = TtyBuffer()
    renderer = SpinnerRenderer(out)
    renderer.clear_message()
    renderer.set_message("")
    renderer.step()
    assert out.getvalue() == ""


@pytest.mark.asyncio
async def test_spawn_spinner_draws_and_stops():
    out = TtyBuffer()
    spinner = spawn_spinner("Loading", out)
    await asyncio.sleep(0.15)
    spinner.set_message("Saving")
    await asyncio.sleep(0.15)
    spinner.stop()
    await asyncio.wait_for(spinner.task, 1)
    text = out.getvalue()
    assert " Loading" in text
    assert " Saving" in text
    assert text.endswith(SHOW)


@pytest.mark.asyncio
async def test_spinner_queues_events():
    spinner = Spinner("first")
    spinner.stop()
    assert spinner.events.qsize() == 2


@pytest.mark.asyncio
async def test_abortable_not_terminal_just_awaits():
    out = io.StringIO()

    async def work():
        return 42

    result = await abortable_run_with_spinner(work(), "Working", create_abort_signal(), out)
    assert result == 42
    assert out.getvalue() == ""


@pytest.mark.asyncio
async def test_abortable_returns_result_and_clears():
    out = TtyBuffer()

    async def work():
        await asyncio.sleep(0.15)
        return "done"

    result = await abortable_run_with_spinner(work(), "Working", create_abort_signal(), out)
    assert result == "done"
    text = out.getvalue()
    assert " Working" in text
    assert text.endswith(SHOW)


@pytest.mark.asyncio
async def test_abortable_propagates_task_error():
    out = TtyBuffer()

    async def work():
        await asyncio.sleep(0.01)
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await abortable_run_with_spinner(work(), "Working", create_abort_signal(), out)


@pytest.mark.asyncio
async def test_abortable_aborts_on_signal():
    out = TtyBuffer()
    abort_signal = create_abort_signal()
    asyncio.get_running_loop().call_later(0.05, abort_signal.set_ctrld)
    cancelled = asyncio.Event()

    async def work():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    with pytest.raises(AbortedError, match=r"^Aborted\.$"):
        await asyncio.wait_for(
            abortable_run_with_spinner(work(), "Working", abort_signal, out), 2
        )
    assert cancelled.is_set()
    assert abort_signal.aborted_ctrld()