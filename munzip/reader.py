# -*- coding: utf-8 -*-
"""
munzip.reader
=============

Lazy reader for single-disk ZIP archives (Store and DEFLATE only).

- read_end_record(): locate the end of central directory record
- read_central_header() / iter_central_directory(): walk the table of contents
- read_local_header(), read_payload(), read_entry_data(): fetch one entry's bytes
- ZipIterator: yields ArchiveEntry objects in central directory order,
  detouring to each local header and seeking back afterwards

Every function works on a seekable binary stream and moves its position.
A stream must not be shared by two traversals at the same time.
"""

from __future__ import annotations
import io
import logging
import zlib
from dataclasses import replace
from typing import BinaryIO, Iterator, Optional, Tuple, Union

from .errors import (
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
from .records import (
    CENTRAL_HEADER_SIGNATURE,
    CENTRAL_HEADER_SIZE,
    END_RECORD_SIGNATURE,
    END_RECORD_SIZE,
    LOCAL_HEADER_SIGNATURE,
    LOCAL_HEADER_SIZE,
    LOCAL_HEADER_STRUCT,
    METHOD_DEFLATED,
    METHOD_STORED,
    SIGNATURE_STRUCT,
    ArchiveEntry,
    CentralDirectoryEntry,
    CentralHeaderFields,
    EndRecord,
    LocalFileHeader,
)

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 0xFFFF
# an end record with the longest possible comment always fits
SCRATCH_SIZE = END_RECORD_SIZE + MAX_COMMENT_LENGTH

_END_SIGNATURE_BYTES = SIGNATURE_STRUCT.pack(END_RECORD_SIGNATURE)

PayloadHeader = Union[LocalFileHeader, CentralDirectoryEntry]


# ----------------- stream helpers -----------------

def _seek(stream: BinaryIO, offset: int, whence: int = io.SEEK_SET) -> int:
    try:
        return stream.seek(offset, whence)
    except OSError as e:
        raise IoFailure(f"Seek to {offset} (whence={whence}) failed: {e}") from e


def _tell(stream: BinaryIO) -> int:
    try:
        return stream.tell()
    except OSError as e:
        raise IoFailure(f"Could not read stream position: {e}") from e


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        try:
            chunk = stream.read(remaining)
        except OSError as e:
            raise IoFailure(f"Read of {size} bytes failed: {e}") from e
        if not chunk:
            raise IoFailure(f"Unexpected end of stream: wanted {size} bytes, got {size - remaining}")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class ScratchBuffer:
    """Reusable workspace for the end record window and entry filenames."""

    def __init__(self, size: int = SCRATCH_SIZE):
        if size <= END_RECORD_SIZE:
            raise ValueError(f"scratch size must be > {END_RECORD_SIZE}")
        self._buf = bytearray(size)

    @property
    def capacity(self) -> int:
        return len(self._buf)

    def fill(self, stream: BinaryIO, size: int) -> memoryview:
        """Read exactly `size` bytes into the front of the buffer and return a view of them."""
        if size > len(self._buf):
            raise ValueError(f"{size} bytes do not fit in a {len(self._buf)} byte scratch buffer")
        view = memoryview(self._buf)[:size]
        got = 0
        while got < size:
            try:
                n = stream.readinto(view[got:])
            except OSError as e:
                raise IoFailure(f"Read of {size} bytes failed: {e}") from e
            if not n:
                raise IoFailure(f"Unexpected end of stream: wanted {size} bytes, got {got}")
            got += n
        return view

    def rfind(self, sub: bytes, end: int) -> int:
        return self._buf.rfind(sub, 0, end)


def _read_filename(stream: BinaryIO, scratch: Optional[ScratchBuffer], length: int) -> str:
    """Read a filename, through `scratch` when given, else straight from the stream."""
    capacity = SCRATCH_SIZE if scratch is None else scratch.capacity
    if length + 1 >= capacity:
        raise FilenameTooLong(length, capacity)
    raw = _read_exact(stream, length) if scratch is None else scratch.fill(stream, length)
    try:
        return bytes(raw).decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUtf8Filename(bytes(raw), str(e)) from e


# ----------------- end record -----------------

def _locate_end_record(scratch: ScratchBuffer, window: memoryview) -> Tuple[int, bool]:
    """
    Scan backward for the end record signature.

    Returns (position, consistent). A candidate is consistent when its comment
    length reaches exactly to the end of the window; the first consistent
    one wins, otherwise the candidate nearest the end is returned.
    """
    size = len(window)
    nearest = -1
    end = size - END_RECORD_SIZE + SIGNATURE_STRUCT.size
    while end >= SIGNATURE_STRUCT.size:
        pos = scratch.rfind(_END_SIGNATURE_BYTES, end)
        if pos < 0:
            break
        if nearest < 0:
            nearest = pos
        candidate = EndRecord.unpack(window, pos)
        if pos + END_RECORD_SIZE + candidate.comment_length == size:
            return pos, True
        end = pos + SIGNATURE_STRUCT.size - 1
    return nearest, False


def read_end_record(stream: BinaryIO, scratch: Optional[ScratchBuffer] = None) -> EndRecord:
    """Find and validate the end of central directory record. Moves the stream."""
    if scratch is None:
        scratch = ScratchBuffer()

    size = _seek(stream, 0, io.SEEK_END)
    if size <= END_RECORD_SIZE:
        raise FileTooSmall(size)

    window_size = min(size, scratch.capacity)
    _seek(stream, size - window_size)
    window = scratch.fill(stream, window_size)

    pos, consistent = _locate_end_record(scratch, window)
    if pos < 0:
        raise SignatureNotFound(window_size)
    if not consistent:
        logger.warning(
            "End record at %#x does not reach end of file; trailing data ignored",
            size - window_size + pos,
        )

    record = EndRecord.unpack(window, pos)
    comment_start = pos + END_RECORD_SIZE
    record = replace(record, comment=bytes(window[comment_start:comment_start + record.comment_length]))

    if not record.is_single_disk:
        raise MultiDiskUnsupported(record)

    logger.debug(
        "End record at %#x: %d entries, central directory %d bytes at %#x",
        size - window_size + pos, record.num_entries,
        record.central_directory_size, record.central_directory_offset,
    )
    return record


# ----------------- central directory -----------------

def read_central_header(stream: BinaryIO, scratch: ScratchBuffer) -> CentralDirectoryEntry:
    """Read one central directory record at the current position and skip its extra/comment."""
    offset = _tell(stream)
    fields = CentralHeaderFields.unpack(_read_exact(stream, CENTRAL_HEADER_SIZE))
    if fields.signature != CENTRAL_HEADER_SIGNATURE:
        raise InvalidGlobalHeaderSignature(fields.signature, offset)

    filename = _read_filename(stream, scratch, fields.filename_length)

    skip = fields.extra_length + fields.comment_length
    if skip:
        _seek(stream, skip, io.SEEK_CUR)

    return CentralDirectoryEntry(
        filename=filename,
        compression_method=fields.compression_method,
        flags=fields.flags,
        last_mod_time=fields.last_mod_time,
        last_mod_date=fields.last_mod_date,
        crc32=fields.crc32,
        compressed_size=fields.compressed_size,
        uncompressed_size=fields.uncompressed_size,
        local_header_offset=fields.local_header_offset,
        extra_length=fields.extra_length,
        comment_length=fields.comment_length,
    )


def iter_central_directory(stream: BinaryIO, scratch: Optional[ScratchBuffer] = None) -> Iterator[CentralDirectoryEntry]:
    """Yield central directory entries in order without touching local data."""
    if scratch is None:
        scratch = ScratchBuffer()
    end_record = read_end_record(stream, scratch)
    _seek(stream, end_record.central_directory_offset)
    for _ in range(end_record.num_entries):
        yield read_central_header(stream, scratch)


# ----------------- local data -----------------

def read_local_header(stream: BinaryIO, offset: Optional[int] = None,
                      scratch: Optional[ScratchBuffer] = None) -> LocalFileHeader:
    """
    Read the local header (and filename) at `offset`, or at the current
    position when offset is None. Leaves the stream at the start of the payload.
    """
    if offset is None:
        offset = _tell(stream)
    else:
        _seek(stream, offset)

    (sig, _needed, flags, method, mtime, mdate, crc, csize, usize,
     name_len, extra_len) = LOCAL_HEADER_STRUCT.unpack(_read_exact(stream, LOCAL_HEADER_SIZE))
    if sig != LOCAL_HEADER_SIGNATURE:
        raise InvalidLocalHeaderSignature(sig, offset)

    filename = _read_filename(stream, scratch, name_len)
    if extra_len:
        _seek(stream, extra_len, io.SEEK_CUR)

    if method == METHOD_STORED and csize != usize:
        raise CorruptStoredEntry(filename, csize, usize)

    return LocalFileHeader(
        filename=filename,
        compression_method=method,
        flags=flags,
        last_mod_time=mtime,
        last_mod_date=mdate,
        crc32=crc,
        compressed_size=csize,
        uncompressed_size=usize,
        extra_length=extra_len,
    )


def _inflate(raw: bytes, header: PayloadHeader) -> bytes:
    inflater = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        data = inflater.decompress(raw) + inflater.flush()
    except zlib.error as e:
        raise DecompressionFailed(header.filename, str(e)) from e
    if not inflater.eof:
        raise DecompressionFailed(header.filename, "truncated deflate stream")
    if len(data) != header.uncompressed_size:
        raise DecompressionFailed(
            header.filename,
            f"inflated {len(data)} bytes, expected {header.uncompressed_size}",
        )
    return data


def read_payload(stream: BinaryIO, header: PayloadHeader, verify_crc: bool = False) -> bytes:
    """Read and decode the payload that starts at the current position."""
    method = header.compression_method
    if method == METHOD_STORED:
        data = _read_exact(stream, header.uncompressed_size)
    elif method == METHOD_DEFLATED:
        data = _inflate(_read_exact(stream, header.compressed_size), header)
    else:
        raise UnsupportedCompressionMethod(method, header.filename)

    if verify_crc:
        actual = zlib.crc32(data)
        if actual != header.crc32:
            raise CrcMismatch(header.filename, header.crc32, actual)
    return data


def read_entry_data(stream: BinaryIO, entry: CentralDirectoryEntry,
                    scratch: Optional[ScratchBuffer] = None, verify_crc: bool = False) -> bytes:
    """Decode one entry via its local header. Leaves the stream after the payload."""
    local = read_local_header(stream, entry.local_header_offset, scratch)
    if local.filename != entry.filename:
        logger.warning("Local name %r differs from central name %r", local.filename, entry.filename)

    # sizes and crc live in the central directory when a data descriptor follows
    source = entry if local.has_data_descriptor else local
    logger.debug(
        "%s, %d / %d bytes at offset %#x",
        local.filename, source.compressed_size, source.uncompressed_size, entry.local_header_offset,
    )
    return read_payload(stream, source, verify_crc=verify_crc)


# ----------------- iterator -----------------

class ZipIterator(Iterator[ArchiveEntry]):
    """
    Walk the central directory of `stream`, yielding one ArchiveEntry per
    record. Locating the end record happens on construction, so a bad
    archive raises before anything is yielded.

    Any error raised by a step ends the iteration; entries already returned
    remain valid.
    """

    def __init__(self, stream: BinaryIO, verify_crc: bool = False,
                 scratch: Optional[ScratchBuffer] = None):
        if not isinstance(verify_crc, bool):
            raise ValueError("verify_crc must be True or False")
        self._stream = stream
        self._scratch = scratch if scratch is not None else ScratchBuffer()
        self.verify_crc = verify_crc
        self.end_record = read_end_record(stream, self._scratch)
        self.next_entry = 0
        self._finished = False
        self._cursor = _seek(stream, self.end_record.central_directory_offset)

    def __iter__(self) -> "ZipIterator":
        return self

    def __next__(self) -> ArchiveEntry:
        if self._finished:
            raise StopIteration

        total = self.end_record.num_entries
        if self.next_entry > total:
            self._finished = True
            raise InvariantViolation(self.next_entry, total)
        if self.next_entry == total:
            self._finished = True
            raise StopIteration

        try:
            entry = self._read_next()
        except ZipReadError:
            self._finished = True
            raise

        self.next_entry += 1
        return entry

    def _read_next(self) -> ArchiveEntry:
        # the caller may have used the stream between steps
        if _tell(self._stream) != self._cursor:
            _seek(self._stream, self._cursor)
        header = read_central_header(self._stream, self._scratch)

        # detour to the local data, then resume the directory walk
        resume_at = _tell(self._stream)
        data = read_entry_data(self._stream, header, self._scratch, self.verify_crc)
        self._cursor = _seek(self._stream, resume_at)

        return ArchiveEntry(filename=header.filename, header=header, data=data)
