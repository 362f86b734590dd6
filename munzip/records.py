# -*- coding: utf-8 -*-
"""
On-disk record layouts and the values decoded from them.

All integers are little-endian and packed without padding. Records are
decoded field by field with explicit struct formats.
"""

from __future__ import annotations
import struct
from dataclasses import dataclass
from typing import Tuple

# ----------------- layouts -----------------

END_RECORD_SIGNATURE = 0x06054B50
CENTRAL_HEADER_SIGNATURE = 0x02014B50
LOCAL_HEADER_SIGNATURE = 0x04034B50

# signature, disk, cd disk, entries here, entries total, cd size, cd offset, comment len
END_RECORD_STRUCT = struct.Struct("<IHHHHIIH")
# signature, made by, needed, flags, method, time, date, crc, csize, usize,
# name len, extra len, comment len, disk start, int attrs, ext attrs, local offset
CENTRAL_HEADER_STRUCT = struct.Struct("<IHHHHHHIIIHHHHHII")
# signature, needed, flags, method, time, date, crc, csize, usize, name len, extra len
LOCAL_HEADER_STRUCT = struct.Struct("<IHHHHHIIIHH")

END_RECORD_SIZE = END_RECORD_STRUCT.size          # 22
CENTRAL_HEADER_SIZE = CENTRAL_HEADER_STRUCT.size  # 46
LOCAL_HEADER_SIZE = LOCAL_HEADER_STRUCT.size      # 30

SIGNATURE_STRUCT = struct.Struct("<I")

METHOD_STORED = 0
METHOD_DEFLATED = 8

METHOD_NAMES = {
    METHOD_STORED: "STORED",
    METHOD_DEFLATED: "DEFLATED",
}

# general purpose flag: sizes and crc follow the data
FLAG_DATA_DESCRIPTOR = 0x08


def dos_date_time(date: int, time: int) -> Tuple[int, int, int, int, int, int]:
    return (
        (date >> 9) + 1980,
        (date >> 5) & 0x0F,
        date & 0x1F,
        time >> 11,
        (time >> 5) & 0x3F,
        (time & 0x1F) * 2,
    )


# ----------------- records -----------------

@dataclass(frozen=True)
class EndRecord:
    disk_number: int
    central_directory_disk_number: int
    num_entries_this_disk: int
    num_entries: int
    central_directory_size: int
    central_directory_offset: int
    comment_length: int
    comment: bytes = b""

    @classmethod
    def unpack(cls, buf, offset: int = 0) -> "EndRecord":
        (_sig, disk, cd_disk, here, total, cd_size, cd_offset,
         comment_len) = END_RECORD_STRUCT.unpack_from(buf, offset)
        return cls(disk, cd_disk, here, total, cd_size, cd_offset, comment_len)

    @property
    def is_single_disk(self) -> bool:
        return (
            self.disk_number == 0
            and self.central_directory_disk_number == 0
            and self.num_entries == self.num_entries_this_disk
        )


@dataclass(frozen=True)
class CentralDirectoryEntry:
    """One central directory record, with its filename."""
    filename: str
    compression_method: int
    flags: int
    last_mod_time: int
    last_mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    local_header_offset: int
    extra_length: int = 0
    comment_length: int = 0

    @property
    def date_time(self) -> Tuple[int, int, int, int, int, int]:
        return dos_date_time(self.last_mod_date, self.last_mod_time)

    @property
    def is_dir(self) -> bool:
        return self.filename.endswith("/")

    @property
    def compress_type(self) -> str:
        return METHOD_NAMES.get(self.compression_method, str(self.compression_method))


@dataclass(frozen=True)
class CentralHeaderFields:
    """Fixed part of a central directory record, before the filename is read."""
    signature: int
    flags: int
    compression_method: int
    last_mod_time: int
    last_mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename_length: int
    extra_length: int
    comment_length: int
    local_header_offset: int

    @classmethod
    def unpack(cls, buf) -> "CentralHeaderFields":
        (sig, _made_by, _needed, flags, method, mtime, mdate, crc, csize, usize,
         name_len, extra_len, comment_len, _disk_start, _int_attrs, _ext_attrs,
         local_offset) = CENTRAL_HEADER_STRUCT.unpack(buf)
        return cls(sig, flags, method, mtime, mdate, crc, csize, usize,
                   name_len, extra_len, comment_len, local_offset)


@dataclass(frozen=True)
class LocalFileHeader:
    """Local copy of the header. Carries no offset: it is only meaningful centrally."""
    filename: str
    compression_method: int
    flags: int
    last_mod_time: int
    last_mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    extra_length: int = 0

    @property
    def has_data_descriptor(self) -> bool:
        return bool(self.flags & FLAG_DATA_DESCRIPTOR)


@dataclass(frozen=True)
class ArchiveEntry:
    filename: str
    header: CentralDirectoryEntry
    data: bytes
