# -*- coding: utf-8 -*-
"""
Error kinds raised while reading an archive.

Every error is terminal for the traversal that raised it. Data errors
(corrupt or unsupported archives) derive from ArchiveError; I/O problems are
IoFailure; InvariantViolation flags a bookkeeping bug in the reader itself.
"""

from __future__ import annotations
from typing import Optional


class ZipReadError(Exception):
    """Base class of everything the reader raises."""


class IoFailure(ZipReadError):
    """Underlying read/seek/stat failed, or the stream ended early.

    The original OSError, when there is one, is chained as __cause__.
    """


class InvariantViolation(ZipReadError):
    def __init__(self, next_entry: int, num_entries: int):
        super().__init__(f"Entry cursor {next_entry} exceeded entry count {num_entries}")
        self.next_entry = next_entry
        self.num_entries = num_entries


class ArchiveError(ZipReadError):
    """The archive is corrupt or uses an unsupported feature."""


class FileTooSmall(ArchiveError):
    def __init__(self, size: int):
        super().__init__(f"Input too small to be a zip archive ({size} bytes)")
        self.size = size


class SignatureNotFound(ArchiveError):
    def __init__(self, searched: int):
        super().__init__(f"End record signature not found in last {searched} bytes")
        self.searched = searched


class MultiDiskUnsupported(ArchiveError):
    def __init__(self, end_record):
        super().__init__(
            "Multi-disk archives are not supported "
            f"(disk={end_record.disk_number}, "
            f"cd_disk={end_record.central_directory_disk_number}, "
            f"entries={end_record.num_entries}/{end_record.num_entries_this_disk})"
        )
        self.end_record = end_record


class InvalidGlobalHeaderSignature(ArchiveError):
    def __init__(self, signature: int, offset: int):
        super().__init__(f"Invalid central directory header signature {signature:#010x} at {offset:#x}")
        self.signature = signature
        self.offset = offset


class InvalidLocalHeaderSignature(ArchiveError):
    def __init__(self, signature: int, offset: int):
        super().__init__(f"Invalid local file header signature {signature:#010x} at {offset:#x}")
        self.signature = signature
        self.offset = offset


class FilenameTooLong(ArchiveError):
    def __init__(self, length: int, capacity: int):
        super().__init__(f"File name too long ({length} bytes, capacity {capacity})")
        self.length = length
        self.capacity = capacity


class InvalidUtf8Filename(ArchiveError):
    def __init__(self, raw: bytes, reason: str = ""):
        super().__init__(f"File name is not valid UTF-8: {raw!r} {reason}".rstrip())
        self.raw = raw


class CorruptStoredEntry(ArchiveError):
    def __init__(self, filename: str, compressed_size: int, uncompressed_size: int):
        super().__init__(
            f"Stored entry {filename!r} declares compressed size {compressed_size} "
            f"!= uncompressed size {uncompressed_size}"
        )
        self.filename = filename
        self.compressed_size = compressed_size
        self.uncompressed_size = uncompressed_size


class UnsupportedCompressionMethod(ArchiveError):
    def __init__(self, method: int, filename: Optional[str] = None):
        where = f" for {filename!r}" if filename else ""
        super().__init__(f"Compression method {method} not supported{where}")
        self.method = method
        self.filename = filename


class DecompressionFailed(ArchiveError):
    def __init__(self, filename: str, reason: str):
        super().__init__(f"Could not inflate {filename!r}: {reason}")
        self.filename = filename
        self.reason = reason


class CrcMismatch(ArchiveError):
    def __init__(self, filename: str, expected: int, actual: int):
        super().__init__(f"CRC mismatch for {filename!r}: expected {expected:#010x}, got {actual:#010x}")
        self.filename = filename
        self.expected = expected
        self.actual = actual
