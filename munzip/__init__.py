# -*- coding: utf-8 -*-
"""Lazy, read-only access to single-disk ZIP archives (Store and DEFLATE)."""

from .errors import (
    ArchiveError,
    CorruptStoredEntry,
    CrcMismatch,
    DecompressionFailed,
    FilenameTooLong,
    FileTooSmall,
    InvalidGlobalHeaderSignature,
    InvalidLocalHeaderSignature,
    InvalidUtf8Filename,
    InvariantViolation,
    IoFailure,
    MultiDiskUnsupported,
    SignatureNotFound,
    UnsupportedCompressionMethod,
    ZipReadError,
)
from .records import ArchiveEntry, CentralDirectoryEntry, EndRecord, LocalFileHeader
from .reader import (
    ScratchBuffer,
    ZipIterator,
    iter_central_directory,
    read_central_header,
    read_end_record,
    read_entry_data,
    read_local_header,
    read_payload,
)
from .navigator import ArchiveReader

__version__ = "0.1.0"
