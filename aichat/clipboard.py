"""Copy text to the clipboard through the terminal's OSC 52 sequence."""

from __future__ import annotations

import base64
import sys
from typing import TextIO


class ClipboardError(Exception):
    """Raised when text could not be copied."""


def osc52_sequence(text: str) -> str:
    """The OSC 52 escape sequence that sets the clipboard to ``text``."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"\x1b]52;c;{encoded}\x07"


def set_text(text: str, stream: TextIO | None = None) -> None:
    """Write ``text`` to the clipboard via ``stream`` (stdout by default)."""
    out = stream if stream is not None else sys.stdout
    seq = osc52_sequence(text)
    try:
        out.write(seq)
    except OSError as err:
        raise ClipboardError("Failed to copy: failed to send OSC52 sequence") from err
    try:
        out.flush()
    except OSError as err:
        raise ClipboardError("Failed to copy: failed to flush OSC52 sequence") from err