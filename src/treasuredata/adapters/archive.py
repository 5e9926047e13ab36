"""tar.gz packing and unpacking for workflow project archives.

Why explicit limits:
- Project directories are user supplied and archives come back from the
  server, so both directions cap file size, total size and entry count.
- Symlinks and hard links are refused; entries must stay below the root.
"""

from __future__ import annotations

import io
import logging
import os
import tarfile
from pathlib import Path

from treasuredata.core.errors import ArchiveError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 100 * 1024 * 1024
MAX_TOTAL_SIZE = 500 * 1024 * 1024
MAX_FILES = 10000


class _Budget:
    def __init__(self, max_files: int, max_file_size: int, max_total_size: int) -> None:
        self.max_files = max_files
        self.max_file_size = max_file_size
        self.max_total_size = max_total_size
        self.files = 0
        self.total = 0

    def charge(self, name: str, size: int) -> None:
        self.files += 1
        if self.files > self.max_files:
            raise ArchiveError(f"too many files: maximum {self.max_files} files allowed")
        if size > self.max_file_size:
            raise ArchiveError(f"file too large: {name} (size: {size} bytes, max: {self.max_file_size} bytes)")
        self.total += size
        if self.total > self.max_total_size:
            raise ArchiveError(
                f"archive too large: total size {self.total} bytes exceeds maximum {self.max_total_size} bytes"
            )


def create_tar_gz(
    source_dir: str | Path,
    *,
    max_files: int = MAX_FILES,
    max_file_size: int = MAX_FILE_SIZE,
    max_total_size: int = MAX_TOTAL_SIZE,
) -> bytes:
    """Pack `source_dir` into an in-memory tar.gz.

    Hidden files and directories (leading dot) are skipped. Entry names are
    relative to `source_dir` and use forward slashes.
    """

    root = Path(source_dir).resolve()
    if not root.is_dir():
        raise ArchiveError(f"not a directory: {source_dir}")

    budget = _Budget(max_files, max_file_size, max_total_size)
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
            current = Path(dirpath)
            # Sorted for stable archives; hidden dirs pruned in place.
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            entries = [current / d for d in dirnames]
            entries += [current / f for f in sorted(filenames) if not f.startswith(".")]
            for path in entries:
                if path.is_symlink():
                    raise ArchiveError(f"symlinks not allowed: {path}")
                rel = path.relative_to(root)
                if rel.is_absolute() or ".." in rel.parts:
                    raise ArchiveError(f"path traversal detected: {rel}")

                size = path.stat().st_size if path.is_file() else 0
                budget.charge(str(path), size)

                info = tar.gettarinfo(str(path), arcname=rel.as_posix())
                if info.isfile():
                    with path.open("rb") as fh:
                        tar.addfile(info, fh)
                else:
                    tar.addfile(info)

    data = buf.getvalue()
    logger.debug("packed %d entries (%d bytes) from %s into %d bytes", budget.files, budget.total, root, len(data))
    return data


def _safe_target(root: Path, name: str) -> Path:
    cleaned = os.path.normpath(name)
    if ".." in Path(cleaned).parts or os.path.isabs(cleaned) or name.startswith(("/", "\\")):
        raise ArchiveError(f"unsafe file path in archive: {name}")
    target = (root / cleaned).resolve()
    if target != root and root not in target.parents:
        raise ArchiveError(f"path traversal detected: {name}")
    return target


def extract_tar_gz(
    data: bytes,
    output_dir: str | Path,
    *,
    max_files: int = MAX_FILES,
    max_file_size: int = MAX_FILE_SIZE,
    max_total_size: int = MAX_TOTAL_SIZE,
) -> list[Path]:
    """Unpack a tar.gz into `output_dir`; returns the regular files written.

    Links of any kind abort the extraction. Other special entries
    (devices, fifos) are skipped.
    """

    root = Path(output_dir)
    root.mkdir(parents=True, exist_ok=True)
    root = root.resolve()

    budget = _Budget(max_files, max_file_size, max_total_size)
    written: list[Path] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            for member in tar:
                if not member.name or member.name in (".", "./"):
                    continue
                target = _safe_target(root, member.name)
                budget.charge(member.name, member.size)

                if member.issym() or member.islnk():
                    raise ArchiveError(f"links not allowed in archive: {member.name}")
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if not member.isfile():
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                source = tar.extractfile(member)
                if source is None:
                    continue
                with source, target.open("wb") as fh:
                    fh.write(source.read(max_file_size + 1))
                os.chmod(target, (member.mode or 0o644) & 0o777)
                written.append(target)
    except (tarfile.TarError, EOFError, OSError) as exc:
        raise ArchiveError(f"cannot read archive: {exc}") from exc

    logger.debug("extracted %d files into %s", len(written), root)
    return written
