"""Path helpers: safe joining, simple glob expansion and listing."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path


def safe_join_path(
    base_path: str | os.PathLike[str], sub_path: str | os.PathLike[str]
) -> Path | None:
    """Join ``sub_path`` under ``base_path``, or ``None`` if it would escape it."""
    base = Path(base_path)
    sub = Path(sub_path)
    if sub.is_absolute() or ".." in sub.parts:
        return None
    joined = base.joinpath(*sub.parts)
    return joined if joined.is_relative_to(base) else None


def _find_first(text: str, *needles: str) -> int | None:
    for needle in needles:
        index = text.find(needle)
        if index >= 0:
            return index
    return None


def parse_glob(path_str: str) -> tuple[str, list[str] | None, bool]:
    """Split a path pattern into ``(base, extensions, current_dir_only)``.

    Understands ``dir/**/*.ext``, ``dir/*.ext``, ``{a,b}`` extension lists
    and a trailing ``/**``.
    """
    glob: tuple[int, int, bool] | None = None
    start = _find_first(path_str, "/**/*.", "\\**\\*.")
    if start is not None:
        glob = (start, 6, False)
    else:
        start = _find_first(path_str, "**/*.", "**\\*.")
        if start is not None:
            glob = (start, 5, False) if start == 0 else None
        else:
            start = _find_first(path_str, "/*.", "\\*.")
            if start is not None:
                glob = (start, 3, True)
            else:
                start = _find_first(path_str, "*.")
                if start == 0:
                    glob = (start, 2, True)

    if glob is None:
        if path_str.endswith(("/**", "\\**")):
            return path_str[:-3], None, False
        return path_str, None, False

    start, offset, current_only = glob
    base_path = path_str[:start] or ("/" if path_str.startswith("/") else ".")
    brace = path_str.find("}", start)
    if brace >= 0:
        extensions_str = path_str[start + offset : brace + 1]
        if not (
            len(extensions_str) >= 2
            and extensions_str.startswith("{")
            and extensions_str.endswith("}")
        ):
            raise ValueError(f"Invalid path '{path_str}'")
        extensions = extensions_str[1:-1].split(",")
    else:
        extensions = [path_str[start + offset :]]
    return base_path, extensions or None, current_only


def _is_valid_extension(suffixes: list[str] | None, path: str) -> bool:
    if not suffixes:
        return True
    extension = Path(path).suffix
    if not extension:
        return False
    return extension[1:] in suffixes


def _list_files(
    found: dict[str, None],
    entry_path: str,
    suffixes: list[str] | None,
    current_only: bool,
    bail_non_exist: bool,
) -> None:
    if not os.path.exists(entry_path):
        if bail_non_exist:
            raise FileNotFoundError(f"Not found '{entry_path}'")
        return
    if not os.path.isdir(entry_path):
        if _is_valid_extension(suffixes, entry_path):
            found.setdefault(entry_path, None)
        return
    with os.scandir(entry_path) as entries:
        children = [entry.path for entry in entries]
    for child in children:
        if os.path.isdir(child):
            if not current_only:
                _list_files(found, child, suffixes, current_only, bail_non_exist)
        elif _is_valid_extension(suffixes, child):
            found.setdefault(child, None)


def expand_glob_paths(paths: Iterable[str], bail_non_exist: bool) -> list[str]:
    """Expand each pattern to the files it matches, without duplicates."""
    found: dict[str, None] = {}
    for path in paths:
        base, suffixes, current_only = parse_glob(path)
        _list_files(found, base, suffixes, current_only, bail_non_exist)
    return list(found)


def list_file_names(directory: str | os.PathLike[str], ext: str) -> list[str]:
    """Sorted names of entries in ``directory`` ending in ``ext``, without it."""
    try:
        names = os.listdir(directory)
    except OSError:
        return []
    return sorted(name[: len(name) - len(ext)] for name in names if name.endswith(ext))


def get_patch_extension(path: str) -> str | None:
    """Lower-cased extension of ``path`` without the dot, if it has one."""
    suffix = Path(path).suffix
    return suffix[1:].lower() if suffix else None


def to_absolute_path(path: str) -> str:
    """Absolute, normalised form of ``path``; symlinks are not resolved."""
    return os.path.abspath(path)


def resolve_home_dir(path: str) -> str:
    """Expand a leading ``~/`` (or ``~\\``) to the home directory."""
    if path.startswith(("~/", "~\\")):
        try:
            home = str(Path.home())
        except (RuntimeError, KeyError):
            return path
        return home + path[1:]
    return path