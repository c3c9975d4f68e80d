"""Expansion of built-in ``{{__name__}}`` variables in prompt text."""

from __future__ import annotations

import locale
import os
import platform
import re
import sys

from .command import detect_shell
from .common import now

RE_VARIABLE = re.compile(r"\{\{(\w+)\}\}")

_ARCH_NAMES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "i386": "x86",
    "i686": "x86",
}


def _os_name() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    return sys.platform


def _os_distro() -> str:
    if _os_name() == "linux":
        try:
            release = platform.freedesktop_os_release()
            info = release.get("PRETTY_NAME") or release.get("NAME", "Linux")
        except OSError:
            info = platform.platform()
        return f"{info} (linux)"
    return platform.platform()


def _os_family() -> str:
    return "windows" if os.name == "nt" else "unix"


def _arch() -> str:
    machine = platform.machine()
    return _ARCH_NAMES.get(machine.lower(), machine)


def _locale() -> str:
    for key in ("LC_ALL", "LC_MESSAGES", "LANG"):
        value = os.environ.get(key)
        if value:
            return value.split(".")[0].split("@")[0].replace("_", "-")
    language = locale.getlocale()[0]
    return language.replace("_", "-") if language else ""


def _cwd() -> str:
    try:
        return os.getcwd()
    except OSError:
        return ""


_RESOLVERS = {
    "__os__": _os_name,
    "__os_distro__": _os_distro,
    "__os_family__": _os_family,
    "__arch__": _arch,
    "__shell__": lambda: detect_shell().name,
    "__locale__": _locale,
    "__now__": now,
    "__cwd__": _cwd,
}


def interpolate_variables(text: str) -> str:
    """Replace known ``{{__name__}}`` variables; leave others untouched."""

    def replace(match: re.Match[str]) -> str:
        resolver = _RESOLVERS.get(match.group(1))
        return resolver() if resolver is not None else match.group(0)

    return RE_VARIABLE.sub(replace, text)