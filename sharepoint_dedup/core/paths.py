"""
Path and shortcut helpers for drive-relative locations.

Logical paths are forward-slash separated and relative to the drive root,
e.g. ``/Shared/Reports/q1.xlsx``.
"""

import posixpath
from typing import Optional, Tuple

DRIVE_ROOT_PREFIX = "/drive/root:"


def strip_drive_root(parent_path: str) -> str:
    """Remove the ``/drive/root:`` prefix Graph puts on parentReference.path."""
    index = parent_path.find(DRIVE_ROOT_PREFIX)
    if index != -1:
        return parent_path[index + len(DRIVE_ROOT_PREFIX):]
    return parent_path


def item_path(parent_path: Optional[str], name: str) -> str:
    """Logical path of an item given its (possibly missing) parent path."""
    if parent_path is None:
        return name
    return f"{strip_drive_root(parent_path)}/{name}"


def normalize_dir(path: str) -> str:
    """Backslashes to slashes, no leading or trailing slash. Empty means drive root."""
    return path.replace("\\", "/").strip("/")


def split_path(path: str) -> Tuple[str, str]:
    """Split a logical path into (normalized parent dir, file name)."""
    normalized = path.replace("\\", "/")
    parent, name = posixpath.split(normalized)
    return normalize_dir(parent), name


def join_drive_path(parent_dir: str, name: str) -> str:
    """Path from the drive root used for upload and lookup by path."""
    parent_dir = normalize_dir(parent_dir)
    return f"{parent_dir}/{name}" if parent_dir else name


def shortcut_name(file_name: str) -> str:
    """``report.final.docx`` -> ``report.final.url``."""
    stem, _ = posixpath.splitext(file_name)
    return f"{stem}.url"


def shortcut_path(original_path: str, name: str) -> str:
    """Logical path of the shortcut that replaces original_path."""
    parent_dir, _ = split_path(original_path)
    return f"/{parent_dir}/{name}" if parent_dir else f"/{name}"


def shortcut_content(target_url: str) -> bytes:
    """Body of a Windows Internet Shortcut pointing at target_url."""
    return f"[InternetShortcut]\r\nURL={target_url}\r\n".encode("utf-8")
