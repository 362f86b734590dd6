# -*- coding: utf-8 -*-
"""
ArchiveReader
=============

Thin driver over munzip.reader for ZIP files on disk.

- Iteration: for entry in reader -> ArchiveEntry in central directory order
- Lookup: namelist(), info(), cat()
- Extraction: extract_all(output_dir, on_error="skip" | "abort")

Robustness features:
- unsafe member names (absolute, drive letters, "..") are never written
- disk space preflight before extraction
- verify_crc: optional CRC-32 check of every decoded entry

Archive errors (munzip.errors) always propagate; on_error only governs
members that cannot be written.
"""

from __future__ import annotations
import logging
import os
import posixpath
import shutil
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .records import ArchiveEntry, CentralDirectoryEntry
from .reader import ScratchBuffer, ZipIterator, iter_central_directory, read_entry_data

logger = logging.getLogger(__name__)

# ----------------- utils -----------------

def _is_safe_member(name: str) -> bool:
    """Reject absolute paths, Windows drive letters, and parent traversal."""
    if name.startswith(("/", "\\")):
        return False
    if len(name) >= 2 and name[1] == ":" and name[0].isalpha():
        return False
    norm = posixpath.normpath(name)
    if norm.startswith("../") or norm == "..":
        return False
    return True

def _free_space_bytes(path: str) -> int:
    usage = shutil.disk_usage(path)
    return usage.free

# ----------------- class -----------------

class ArchiveReader(Iterable[ArchiveEntry]):
    """Read-only view of a ZIP file on disk."""

    def __init__(self, zip_path: str, verify_crc: bool = False):
        self.zip_path = os.fspath(zip_path)
        if not os.path.isfile(self.zip_path):
            raise FileNotFoundError(self.zip_path)
        if not isinstance(verify_crc, bool):
            raise ValueError("verify_crc must be True or False")
        self.verify_crc = verify_crc
        self._fp = open(self.zip_path, "rb")
        self._scratch = ScratchBuffer()
        self._entries: Optional[List[CentralDirectoryEntry]] = None

    def _stream(self):
        if self._fp is None:
            raise ValueError(f"Archive {self.zip_path} is closed")
        return self._fp

    # ---------------- lookup ----------------

    def _central_entries(self) -> List[CentralDirectoryEntry]:
        if self._entries is None:
            self._entries = list(iter_central_directory(self._stream(), self._scratch))
        return self._entries

    def _lookup(self, path: str) -> CentralDirectoryEntry:
        name = path.replace("\\", "/")
        # duplicates: the last record wins
        for entry in reversed(self._central_entries()):
            if entry.filename == name:
                if entry.is_dir:
                    raise IsADirectoryError(name)
                return entry
        prefix = name.rstrip("/") + "/"
        if name == "" or any(e.filename.startswith(prefix) for e in self._central_entries()):
            raise IsADirectoryError(name)
        raise FileNotFoundError(name)

    def namelist(self) -> List[str]:
        return [e.filename for e in self._central_entries()]

    def info(self, path: str) -> Dict[str, Any]:
        entry = self._lookup(path)
        return {
            "filename": entry.filename,
            "file_size": entry.uncompressed_size,
            "compress_size": entry.compressed_size,
            "date_time": entry.date_time,
            "CRC": entry.crc32,
            "compress_type": entry.compress_type,
        }

    def cat(self, path: str, encoding="utf-8", errors="strict"):
        entry = self._lookup(path)
        data = read_entry_data(self._stream(), entry, self._scratch, verify_crc=self.verify_crc)
        return data.decode(encoding, errors=errors) if encoding else data

    # ---------------- iteration ----------------

    def __iter__(self) -> ZipIterator:
        return ZipIterator(self._stream(), verify_crc=self.verify_crc, scratch=self._scratch)

    # ---- Extraction with error handling ----

    def _preflight_space(self, out_root: str) -> None:
        """Estimate needed space and fail early if disk is clearly insufficient."""
        total_uncompressed = sum(e.uncompressed_size for e in self._central_entries() if not e.is_dir)
        # 5% margin + 16 MiB
        needed = int(total_uncompressed * 1.05) + 16 * 1024 * 1024
        free = _free_space_bytes(out_root)
        if free < needed:
            raise RuntimeError(
                f"Insufficient free space in extraction folder: "
                f"need ~{needed/1e6:.1f} MB, free ~{free/1e6:.1f} MB."
            )

    def _write_member(self, entry: ArchiveEntry, out_root: str) -> str:
        dest_path = os.path.join(out_root, *entry.filename.split("/"))
        os.makedirs(os.path.dirname(dest_path), exist_ok=True)
        with open(dest_path, "wb") as dst:
            dst.write(entry.data)
        return os.path.abspath(dest_path)

    def extract_all(self, output_dir: str, on_error: str = "skip") -> Tuple[List[str], List[str]]:
        """
        Write every file entry below output_dir.

        on_error:
            - "skip": members that cannot be written are logged and returned in failed.
            - "abort": the first such member raises RuntimeError.
        Return (written_paths, failed_members).
        """
        if on_error not in {"skip", "abort"}:
            raise ValueError("on_error must be 'skip' or 'abort'")

        out_root = os.fspath(output_dir)
        os.makedirs(out_root, exist_ok=True)
        self._preflight_space(out_root)

        ok_paths: List[str] = []
        failed: List[str] = []

        for entry in self:
            m = entry.filename
            if not _is_safe_member(m):
                failed.append(m)
                if on_error == "abort":
                    raise RuntimeError(f"Unsafe ZIP member: {m}")
                logger.warning("Skipping unsafe member %r", m)
                continue

            try:
                if entry.header.is_dir:
                    os.makedirs(os.path.join(out_root, *m.rstrip("/").split("/")), exist_ok=True)
                    continue
                ok_paths.append(self._write_member(entry, out_root))
            except (OSError, ValueError) as e:
                # ValueError: names the OS cannot represent (embedded NUL)
                failed.append(m)
                if on_error == "abort":
                    raise RuntimeError(f"Error extracting {m}: {e}") from e
                logger.warning("Skipping %r: %s", m, e)

        return ok_paths, failed

    # ---------------- context manager ----------------

    def close(self):
        """Close the underlying file. Safe to call twice."""
        if self._fp is not None:
            self._fp.close()
            self._fp = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
