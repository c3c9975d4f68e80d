"""Shell detection and running of external commands."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .common import get_env_name, now_timestamp, temp_file

log = logging.getLogger(__name__)

_SHELL_ARGS = {"powershel": "-Command", "cmd": "/C"}


class CommandError(Exception):
    """Raised when an external command cannot be run or fails."""


@dataclass(frozen=True)
class Shell:
    """The user's shell: display name, executable and the flag that takes a command."""

    name: str
    cmd: str
    arg: str


def _is_windows() -> bool:
    return os.name == "nt"


def _shell_command() -> str | None:
    cmd = os.environ.get(get_env_name("shell"))
    if cmd is not None:
        return cmd
    if _is_windows():
        module_path = os.environ.get("PSModulePath")
        if module_path is not None:
            module_path = module_path.lower()
            if module_path.startswith("c:\\users"):
                if "\\powershell\\7\\" in module_path:
                    return "pwsh.exe"
                return "powershell.exe"
        return None
    return os.environ.get("SHELL")


def detect_shell() -> Shell:
    """Work out which shell the user runs, from the environment."""
    cmd = _shell_command()
    stem = Path(cmd).stem if cmd else ""
    if cmd and stem and stem != "..":
        name = "nushell" if stem == "nu" else stem.lower()
    elif _is_windows():
        cmd, name = "cmd.exe", "cmd"
    else:
        cmd, name = "/bin/sh", "sh"
    return Shell(name, cmd, _SHELL_ARGS.get(name, "-c"))


def _merged_env(envs: Mapping[str, str] | None) -> dict[str, str] | None:
    if not envs:
        return None
    return {**os.environ, **envs}


def run_command(
    cmd: str, args: Sequence[str], envs: Mapping[str, str] | None = None
) -> int:
    """Run a command attached to the terminal and return its exit code."""
    completed = subprocess.run([cmd, *args], env=_merged_env(envs), check=False)
    return completed.returncode if completed.returncode >= 0 else 0


def run_command_with_output(
    cmd: str, args: Sequence[str], envs: Mapping[str, str] | None = None
) -> tuple[bool, str, str]:
    """Run a command and return ``(success, stdout, stderr)``."""
    completed = subprocess.run(
        [cmd, *args], env=_merged_env(envs), capture_output=True, check=False
    )
    try:
        stdout = completed.stdout.decode("utf-8")
    except UnicodeDecodeError as err:
        raise CommandError("Invalid UTF-8 in stdout") from err
    try:
        stderr = completed.stderr.decode("utf-8")
    except UnicodeDecodeError as err:
        raise CommandError("Invalid UTF-8 in stderr") from err
    return completed.returncode == 0, stdout, stderr


def run_loader_command(path: str, extension: str, loader_command: str) -> str:
    """Run a document loader and return what it produced.

    ``$1`` in the command is replaced by ``path``. If ``$2`` appears, it is
    replaced by a temporary output file that is read afterwards; otherwise
    the loader's stdout is the result.
    """
    invalid = f"Invalid document loader '{extension}': `{loader_command}`"
    try:
        cmd_args = shlex.split(loader_command)
    except ValueError as err:
        raise CommandError(invalid) from err
    if not cmd_args:
        raise CommandError(invalid)

    outpath = str(temp_file("-output-", ""))
    use_stdout = True
    resolved: list[str] = []
    for arg in cmd_args:
        arg = arg.replace("$1", path)
        if "$2" in arg:
            use_stdout = False
            arg = arg.replace("$2", outpath)
        resolved.append(arg)

    cmd_eval = shlex.join(resolved)
    log.debug("run `%s`", cmd_eval)
    cmd, *args = resolved
    not_installed = f"Unable to run `{cmd_eval}`, Perhaps '{cmd}' is not installed?"
    failed = f"The command `{cmd_eval}` exited with non-zero."

    if use_stdout:
        try:
            success, stdout, stderr = run_command_with_output(cmd, args)
        except (OSError, CommandError) as err:
            raise CommandError(not_installed) from err
        if not success:
            raise CommandError(stderr or failed)
        return stdout

    try:
        status = run_command(cmd, args)
    except OSError as err:
        raise CommandError(not_installed) from err
    if status != 0:
        raise CommandError(failed)
    try:
        return Path(outpath).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise CommandError("Failed to read file generated by the loader") from err


def edit_file(editor: str, path: str | os.PathLike[str]) -> None:
    """Open ``path`` in ``editor`` and wait for it to exit."""
    subprocess.run([editor, os.fspath(path)], check=False)


def _home() -> Path | None:
    try:
        return Path.home()
    except (RuntimeError, KeyError):
        return None


def _config_dir() -> Path | None:
    if _is_windows():
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else None
    home = _home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" if home else None
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg)
    return home / ".config" if home else None


def _data_dir() -> Path | None:
    appdata = os.environ.get("APPDATA")
    return Path(appdata) if appdata else None


def get_history_file(shell: str) -> Path | None:
    """Location of the history file of ``shell``, or ``None`` if unknown."""
    if shell in ("bash", "sh", "zsh"):
        home = _home()
        if home is None:
            return None
        histfile = os.environ.get("HISTFILE")
        if histfile is not None:
            return Path(histfile)
        return home / (".zsh_history" if shell == "zsh" else ".bash_history")
    if shell == "nushell":
        config = _config_dir()
        return config / "nushell" / "history.txt" if config else None
    if shell in ("powershell", "pwsh"):
        if _is_windows():
            data = _data_dir()
            if data is None:
                return None
            return (
                data / "Microsoft" / "Windows" / "PowerShell" / "PSReadLine"
                / "ConsoleHost_history.txt"
            )
        home = _home()
        if home is None:
            return None
        return (
            home / ".local" / "share" / "powershell" / "PSReadLine"
            / "ConsoleHost_history.txt"
        )
    home = _home()
    if home is None:
        return None
    if shell == "fish":
        return home / ".local" / "share" / "fish" / "fish_history"
    if shell == "ksh":
        return home / ".ksh_history"
    if shell == "tcsh":
        return home / ".history"
    return None


def append_to_shell_history(shell: str, command: str, exit_code: int) -> None:
    """Record ``command`` in the shell's history file, in that shell's format."""
    history_file = get_history_file(shell)
    if history_file is None:
        return
    command = command.replace("\n", " ")
    now = now_timestamp()
    if shell == "fish":
        entry = f"- cmd: {command}\n  when: {now}"
    elif shell == "zsh":
        entry = f": {now}:{exit_code};{command}"
    else:
        entry = command
    with open(history_file, "a", encoding="utf-8", newline="") as file:
        file.write(f"{entry}\n")