"""Output naming, source resolution and destination safety checks."""

from __future__ import annotations

import os
import unicodedata
from pathlib import Path, PureWindowsPath
from typing import Optional, Union

from .models import RecoverableItem

PathLike = Union[str, "os.PathLike[str]"]

_INVALID_CHARS = frozenset('<>:"/\\|?*')
_RESERVED_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{index}" for index in range(1, 10)}
    | {f"LPT{index}" for index in range(1, 10)}
)


class UnsafeDestinationError(ValueError):
    """The recovery destination could overwrite the source medium."""


def _ascii_lower(text: str) -> str:
    return "".join(ch.lower() if ch.isascii() else ch for ch in text)


def _ascii_upper(text: str) -> str:
    return "".join(ch.upper() if ch.isascii() else ch for ch in text)


def is_windows_reserved_name(name: str) -> bool:
    """Return True for Windows reserved device names such as CON or LPT1."""
    return _ascii_upper(name) in _RESERVED_NAMES


def sanitize_name(name: str) -> str:
    """Replace characters illegal in Windows file names and avoid reserved names."""
    normalized = "".join(
        "_" if unicodedata.category(ch) == "Cc" or ch in _INVALID_CHARS else ch
        for ch in name
    )
    normalized = normalized.strip().rstrip(" .")
    if not normalized:
        return "item.bin"
    if is_windows_reserved_name(normalized):
        return f"_{normalized}"
    return normalized


def split_file_name(name: str) -> tuple[str, Optional[str]]:
    """Split a file name into its stem and extension (None when there is none)."""
    base = name.rstrip("/").rsplit("/", 1)[-1] if name else ""
    if base in ("", ".", ".."):
        return "item", None
    dot = base.rfind(".")
    if dot <= 0:
        return base, None
    stem = base[:dot] or "item"
    return stem, base[dot + 1 :]


def build_unique_path(destination: PathLike, preferred_name: str) -> Path:
    """Return a path in destination that does not exist yet, numbering on conflict."""
    destination = Path(destination)
    path = destination / preferred_name
    if not path.exists():
        return path

    stem, ext = split_file_name(preferred_name)
    counter = 1
    while True:
        name = f"{stem}_{counter}.{ext}" if ext is not None else f"{stem}_{counter}"
        path = destination / name
        if not path.exists():
            return path
        counter += 1


def build_output_path(
    destination: PathLike, item: RecoverableItem, keep_original_name: bool
) -> Path:
    """Choose the output path of a recovered item following the naming policy."""
    clean_name = sanitize_name(item.suggested_name)
    if keep_original_name:
        preferred = clean_name
    else:
        preferred = f"{sanitize_name(item.id)}_{clean_name}"
    return build_unique_path(destination, preferred)


def drive_letter_from_device_path(value: str) -> Optional[str]:
    """Extract the lower-case drive letter of a ``\\\\.\\X:`` style device path."""
    text = _ascii_lower(value)
    if (
        len(text) >= 6
        and text[0] == "\\"
        and text[1] == "\\"
        and text[2] in ".?"
        and text[3] == "\\"
        and text[4].isascii()
        and text[4].isalpha()
        and text[5] == ":"
    ):
        return text[4]
    return None


def windows_volume_key(path: PathLike) -> Optional[str]:
    """Return a key identifying the Windows volume of a path, if any."""
    raw = os.fspath(path)
    letter = drive_letter_from_device_path(raw)
    if letter is not None:
        return f"{letter}:"
    if os.name != "nt":
        return None
    drive = PureWindowsPath(raw).drive
    return _ascii_lower(drive) if drive else None


def absolute_path(path: PathLike) -> Path:
    """Make a path absolute, resolving it fully when it exists."""
    path = Path(path)
    absolute = path if path.is_absolute() else Path.cwd() / path
    if absolute.exists():
        return absolute.resolve(strict=True)
    return absolute


def validate_destination_path(source_path: PathLike, destination: PathLike) -> None:
    """Raise UnsafeDestinationError when the destination could overwrite the source."""
    source = Path(source_path)
    try:
        source_abs = source.resolve(strict=True)
    except OSError:
        source_abs = source
    destination_abs = absolute_path(destination)

    if destination_abs.is_relative_to(source_abs):
        raise UnsafeDestinationError(
            f"目标路径 {destination_abs} 位于源路径 {source_abs} 内部"
        )

    if source_abs.is_dir() and source_abs.is_relative_to(destination_abs):
        raise UnsafeDestinationError(
            f"目标路径 {destination_abs} 是源目录 {source_abs} 的上级目录"
        )

    if source_abs == destination_abs:
        raise UnsafeDestinationError(f"目标路径 {destination_abs} 与源路径相同")

    source_volume = windows_volume_key(source_abs)
    destination_volume = windows_volume_key(destination_abs)
    if (
        source_volume is not None
        and destination_volume is not None
        and source_volume == destination_volume
    ):
        raise UnsafeDestinationError(
            f"源路径（{source_abs}）与目标路径（{destination_abs}）位于同一 Windows 卷"
        )


def resolve_source_path(source: str, report_path: PathLike) -> Path:
    """Resolve a report's source path, trying the report directory then the cwd."""
    source_path = Path(source)
    if source_path.is_absolute():
        return source_path

    from_report_dir = Path(report_path).parent / source_path
    if from_report_dir.exists():
        return from_report_dir

    try:
        cwd = Path.cwd()
    except OSError:
        cwd = Path(".")
    from_cwd = cwd / source_path
    if from_cwd.exists():
        return from_cwd

    return from_report_dir


def requires_windows_raw_alignment(path: PathLike) -> bool:
    """Return True when reads from this path must be sector aligned."""
    if os.name != "nt":
        return False
    return drive_letter_from_device_path(os.fspath(path)) is not None