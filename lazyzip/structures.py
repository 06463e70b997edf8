"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
ZIP structure definitions and parsing functions.

This module defines dataclasses for the ZIP records the reader decodes (end of
central directory, central directory entries, data descriptors) and the functions
that locate and parse them.
"""

import logging
import struct
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO

from .constants import (
    CENTRAL_DIR_HEADER,
    CENTRAL_DIR_HEADER_FORMAT,
    CENTRAL_DIR_HEADER_SIZE,
    DATA_DESCRIPTOR_FORMAT,
    DATA_DESCRIPTOR_SIZE,
    DIRECTORY_END_SEARCH_WINDOWS,
    END_OF_CENTRAL_DIR,
    END_OF_CENTRAL_DIR_FORMAT,
    END_OF_CENTRAL_DIR_MAGIC,
    END_OF_CENTRAL_DIR_SIZE,
    FLAG_DATA_DESCRIPTOR,
    FLAG_ENCRYPTED,
    LOCAL_FILE_HEADER,
    LOCAL_FILE_HEADER_FORMAT,
    LOCAL_FILE_HEADER_SIZE,
    METHOD_TO_NAME,
)
from .errors import ZipFormatError, ZipTruncatedError
from .store import ByteStore
from .utils import decode_text, dos_datetime_to_timestamp, read_exact, uint16_at

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryEnd:
    """End of Central Directory record.

    This record marks the end of the central directory and contains
    information needed to locate the central directory. The disk fields
    are decoded but not otherwise used.
    """

    disk_num: int
    cd_disk: int
    cd_records_on_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int
    comment_len: int
    comment: bytes


@dataclass(frozen=True)
class DataDescriptor:
    """Data descriptor structure.

    Used when the data descriptor flag is set. Contains the actual CRC32
    and sizes, written after the compressed data.
    """

    crc32: int
    compressed_size: int
    uncompressed_size: int


@dataclass(frozen=True)
class ZipEntry:
    """ZIP entry metadata, as recorded in the central directory.

    Entries are never modified after parsing. When ``has_data_descriptor`` is
    true, ``crc32`` and the sizes may be zero; the real values then follow the
    entry body.
    """

    raw_name: bytes
    raw_comment: bytes
    extra: bytes
    creator_version: int
    reader_version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    external_attrs: int
    header_offset: int

    @property
    def name(self) -> str:
        return decode_text(self.raw_name, self.flags)

    @property
    def comment(self) -> str:
        return decode_text(self.raw_comment, self.flags)

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)

    @property
    def has_data_descriptor(self) -> bool:
        return bool(self.flags & FLAG_DATA_DESCRIPTOR)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)

    @property
    def is_dir(self) -> bool:
        """True for directory entries (trailing slash or Unix directory mode)."""
        if self.raw_name.endswith(b"/"):
            return True
        return (self.external_attrs >> 16) & 0o170000 == 0o040000

    @property
    def method_name(self) -> str:
        return METHOD_TO_NAME.get(self.compression_method, f"method-{self.compression_method}")


def find_signature_in_block(block: bytes) -> int:
    """Find the end of central directory record in a block taken from the end of a file.

    The block is scanned backward. A signature match at position ``p`` is accepted only
    if the record's comment length makes it end exactly at the end of the block, which
    rejects signature bytes that happen to occur inside a comment or in entry data.

    Args:
        block: The last bytes of the archive.

    Returns:
        Position of the record within the block, or -1 if there is none.
    """
    end = len(block) - END_OF_CENTRAL_DIR_SIZE + len(END_OF_CENTRAL_DIR_MAGIC)
    while end >= len(END_OF_CENTRAL_DIR_MAGIC):
        pos = block.rfind(END_OF_CENTRAL_DIR_MAGIC, 0, end)
        if pos == -1:
            break
        comment_len = uint16_at(block, pos + END_OF_CENTRAL_DIR_SIZE - 2)
        if pos + END_OF_CENTRAL_DIR_SIZE + comment_len == len(block):
            return pos
        end = pos + len(END_OF_CENTRAL_DIR_MAGIC) - 1
    return -1


def parse_eocd(block: bytes) -> DirectoryEnd:
    """Parse an End of Central Directory record from the start of ``block``.

    Args:
        block: Bytes starting at the EOCD signature, comment included.

    Returns:
        DirectoryEnd object.

    Raises:
        ZipFormatError: If the signature is invalid.
        ZipTruncatedError: If the block is too short.
    """
    if len(block) < END_OF_CENTRAL_DIR_SIZE:
        raise ZipTruncatedError(
            f"Unexpected end of file: expected {END_OF_CENTRAL_DIR_SIZE} bytes, got {len(block)}"
        )

    (
        signature,
        disk_num,
        cd_disk,
        cd_records_on_disk,
        cd_records_total,
        cd_size,
        cd_offset,
        comment_len,
    ) = struct.unpack_from(END_OF_CENTRAL_DIR_FORMAT, block)

    if signature != END_OF_CENTRAL_DIR:
        raise ZipFormatError(
            f"Invalid EOCD signature: 0x{signature:08X}, "
            f"expected 0x{END_OF_CENTRAL_DIR:08X}"
        )

    comment = bytes(block[END_OF_CENTRAL_DIR_SIZE : END_OF_CENTRAL_DIR_SIZE + comment_len])

    return DirectoryEnd(
        disk_num=disk_num,
        cd_disk=cd_disk,
        cd_records_on_disk=cd_records_on_disk,
        cd_records_total=cd_records_total,
        cd_size=cd_size,
        cd_offset=cd_offset,
        comment_len=comment_len,
        comment=comment,
    )


def find_eocd(store: ByteStore) -> DirectoryEnd:
    """Find and parse the End of Central Directory record.

    The record sits at the very end of the archive, followed only by a comment of up
    to 65535 bytes. The last 1 KiB is searched first, then the last 65 KiB.

    Args:
        store: The archive bytes.

    Returns:
        DirectoryEnd object.

    Raises:
        ZipFormatError: If no consistent EOCD record can be found.
    """
    size = store.size

    for i, window in enumerate(DIRECTORY_END_SEARCH_WINDOWS):
        window = min(window, size)
        block = store.read_at(size - window, window)
        if len(block) != window:
            raise ZipTruncatedError(
                f"Unexpected end of file: expected {window} bytes, got {len(block)}"
            )

        pos = find_signature_in_block(block)
        if pos >= 0:
            logger.debug("EOCD found at offset %d", size - window + pos)
            return parse_eocd(block[pos:])

        if i == len(DIRECTORY_END_SEARCH_WINDOWS) - 1 or window == size:
            break

    raise ZipFormatError("End of Central Directory record not found")


def parse_central_directory_header(f: BinaryIO) -> ZipEntry:
    """Parse a central directory header from the current file position.

    Args:
        f: Binary file-like object positioned at the start of a central directory header.

    Returns:
        ZipEntry object.

    Raises:
        ZipFormatError: If the signature is invalid.
        ZipTruncatedError: If the header is incomplete.
    """
    header = read_exact(f, CENTRAL_DIR_HEADER_SIZE)

    (
        signature,
        creator_version,
        reader_version,
        flags,
        compression_method,
        mod_time,
        mod_date,
        crc32,
        compressed_size,
        uncompressed_size,
        filename_len,
        extra_len,
        comment_len,
        _disk_num,
        _internal_attrs,
        external_attrs,
        header_offset,
    ) = struct.unpack(CENTRAL_DIR_HEADER_FORMAT, header)

    if signature != CENTRAL_DIR_HEADER:
        raise ZipFormatError(
            f"Invalid central directory header signature: 0x{signature:08X}, "
            f"expected 0x{CENTRAL_DIR_HEADER:08X}"
        )

    variable = read_exact(f, filename_len + extra_len + comment_len)

    return ZipEntry(
        raw_name=variable[:filename_len],
        extra=variable[filename_len : filename_len + extra_len],
        raw_comment=variable[filename_len + extra_len :],
        creator_version=creator_version,
        reader_version=reader_version,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        external_attrs=external_attrs,
        header_offset=header_offset,
    )


def find_body_offset(store: ByteStore, header_offset: int) -> int:
    """Validate the local file header at ``header_offset`` and measure it.

    Only the fixed part of the header is read. Its size and CRC fields are ignored;
    the central directory's copies are authoritative.

    Returns:
        Offset of the entry body, relative to ``header_offset``.

    Raises:
        ZipFormatError: If the local file header signature is invalid.
        ZipTruncatedError: If the header is cut short by the end of the file.
    """
    header = store.read_at(header_offset, LOCAL_FILE_HEADER_SIZE)
    if len(header) != LOCAL_FILE_HEADER_SIZE:
        raise ZipTruncatedError(
            f"Unexpected end of file: expected {LOCAL_FILE_HEADER_SIZE} bytes, got {len(header)}"
        )

    fields = struct.unpack(LOCAL_FILE_HEADER_FORMAT, header)
    signature = fields[0]
    if signature != LOCAL_FILE_HEADER:
        raise ZipFormatError(
            f"Invalid local file header signature: 0x{signature:08X}, "
            f"expected 0x{LOCAL_FILE_HEADER:08X}"
        )

    filename_len, extra_len = fields[9], fields[10]
    return LOCAL_FILE_HEADER_SIZE + filename_len + extra_len


def parse_data_descriptor(f: BinaryIO) -> DataDescriptor:
    """Parse a data descriptor from the current file position.

    The descriptor is read as three 32-bit fields; no signature is expected.

    Raises:
        ZipTruncatedError: If the descriptor is cut short by the end of the data.
    """
    crc32, compressed_size, uncompressed_size = struct.unpack(
        DATA_DESCRIPTOR_FORMAT, read_exact(f, DATA_DESCRIPTOR_SIZE)
    )
    return DataDescriptor(
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
    )
