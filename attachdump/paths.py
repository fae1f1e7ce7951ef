"""Output filename derivation and collision-free writes."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse


def _basename(filename: str) -> str:
    name = PurePosixPath(filename.replace("\\", "/")).name
    return name or "attachment"


def output_name(attachment_id: int | str, filename: str) -> str:
    """Return ``{attachment_id}_{filename}`` with any directory part dropped."""

    return f"{attachment_id}_{_basename(filename)}"


def filename_from_url(url: str) -> str:
    """Return the last path segment of ``url`` without query string or fragment."""

    path = urlparse(url).path
    return _basename(unquote(path.rstrip("/").rsplit("/", 1)[-1]))


def candidate_path(base: Path, index: int) -> Path:
    return base.with_name(f"{base.stem} ({index}){base.suffix}")


def unique_path(base: Path) -> Path:
    """Probe ``base``, ``stem (0).ext``, ``stem (1).ext``... and return the first free path.

    The probe is not atomic; use :func:`write_unique` to create the file.
    """

    if not base.exists():
        return base
    index = 0
    while True:
        candidate = candidate_path(base, index)
        if not candidate.exists():
            return candidate
        index += 1


def write_unique(base: Path, data: bytes) -> Path:
    """Write ``data`` to a fresh path derived from ``base`` and return it.

    Files are opened with ``xb`` so a path created between probe and write is
    never overwritten; the probe is simply repeated.

    Raises:
        OSError: Any filesystem error other than a lost create race.
    """

    while True:
        path = unique_path(base)
        try:
            fp = path.open("xb")
        except FileExistsError:
            continue
        try:
            with fp:
                fp.write(data)
        except OSError:
            path.unlink(missing_ok=True)
            raise
        return path
