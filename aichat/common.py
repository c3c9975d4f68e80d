"""Small text, time and environment helpers shared across the package."""

from __future__ import annotations

import math
import os
import re
import struct
import sys
import tempfile
import time
import uuid
from datetime import datetime
from enum import IntEnum
from pathlib import Path

CRATE_NAME = "aichat"

CODE_BLOCK_RE = re.compile(r"```\w*(.*)```", re.MULTILINE | re.DOTALL)
THINK_TAG_RE = re.compile(r"^\s*<think>.*?</think>(\s*|$)", re.DOTALL)

_IDEOGRAPHIC = "\u3040-\u309f\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff"
_WORD_RE = re.compile(
    rf"[{_IDEOGRAPHIC}]"
    rf"|[^\W{_IDEOGRAPHIC}]+(?:['\u2019.][^\W{_IDEOGRAPHIC}]+)*"
)

_ANSI_RESET = "\x1b[0m"


class Color(IntEnum):
    """Foreground colours as ANSI SGR codes."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    PURPLE = 35
    CYAN = 36
    WHITE = 37


def _is_stdout_terminal() -> bool:
    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def _no_color() -> bool:
    return bool(parse_bool(os.environ.get("NO_COLOR", ""))) or not _is_stdout_terminal()


def _ascii_upper(value: str) -> str:
    return "".join(chr(ord(c) - 32) if "a" <= c <= "z" else c for c in value)


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def now() -> str:
    """Current local time as RFC 3339 with second precision."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def now_timestamp() -> int:
    """Current Unix timestamp in seconds."""
    return int(time.time())


def get_env_name(key: str) -> str:
    """Name of the environment variable that holds setting ``key``."""
    return _ascii_upper(f"{CRATE_NAME}_{key}")


def normalize_env_name(value: str) -> str:
    return _ascii_upper(value.replace("-", "_"))


def parse_bool(value: str) -> bool | None:
    if value in ("1", "true"):
        return True
    if value in ("0", "false"):
        return False
    return None


def estimate_token_length(text: str) -> int:
    """Rough token estimate: 1.3 per ASCII word, otherwise by character count."""
    output = _f32(0.0)
    for word in _WORD_RE.findall(text):
        if word.isascii():
            output = _f32(output + _f32(1.3))
        else:
            count = len(word)
            step = 1.0 if count == 1 else _f32(count * 0.5)
            output = _f32(output + step)
    return math.ceil(output)


def strip_think_tag(text: str) -> str:
    """Remove a leading ``<think>...</think>`` block."""
    return THINK_TAG_RE.sub("", text)


def extract_code_block(text: str) -> str:
    """Return the contents of a fenced code block, or the text unchanged."""
    match = CODE_BLOCK_RE.search(text)
    if match is None:
        return text
    return match.group(1).strip()


def convert_option_string(value: str) -> str | None:
    return value or None


def _causes(err: BaseException) -> list[BaseException]:
    causes: list[BaseException] = []
    seen = {id(err)}
    current = err
    while True:
        nxt = current.__cause__
        if nxt is None and not current.__suppress_context__:
            nxt = current.__context__
        if nxt is None or id(nxt) in seen:
            return causes
        seen.add(id(nxt))
        causes.append(nxt)
        current = nxt


def pretty_error(err: BaseException) -> str:
    """Format an exception and its chain of causes."""
    output = [f"Error: {err}"]
    causes = _causes(err)
    if causes:
        output.append("\nCaused by:")
        if len(causes) == 1:
            output.append(f"    {indent_text(causes[0], 4).strip()}")
        else:
            for i, cause in enumerate(causes):
                output.append(f"{i:5}: {indent_text(cause, 7).strip()}")
    return "\n".join(output)


def indent_text(s: object, size: int) -> str:
    indent = " " * size
    return "\n".join(f"{indent}{line}" for line in str(s).split("\n"))


def color_text(text: str, color: Color) -> str:
    if _no_color():
        return text
    return f"\x1b[{int(color)}m{text}{_ANSI_RESET}"


def error_text(text: str) -> str:
    return color_text(text, Color.RED)


def warning_text(text: str) -> str:
    return color_text(text, Color.YELLOW)


def dimmed_text(text: str) -> str:
    if _no_color():
        return text
    return f"\x1b[2m{text}{_ANSI_RESET}"


def multiline_text(text: str) -> str:
    """Prefix every line after the first with ``.. ``."""
    first, *rest = text.split("\n")
    return "\n".join([first, *(f".. {line}" for line in rest)])


def temp_file(prefix: str, suffix: str) -> Path:
    """A unique path in the temporary directory; the file is not created."""
    name = f"{CRATE_NAME.lower()}-{os.getpid()}{prefix}{uuid.uuid4()}{suffix}"
    return Path(tempfile.gettempdir()) / name


def is_url(path: str) -> bool:
    return path.startswith(("http://", "https://"))