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
Utility functions for the ZIP reader.

This module provides helper functions for CRC32 calculation, DOS date/time
conversion, text decoding, little-endian field extraction and safe binary reads.
"""

import struct
import zlib
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

from .constants import FLAG_UTF8
from .errors import ZipFormatError, ZipTruncatedError


def crc32(data: bytes, value: int = 0) -> int:
    """Calculate (or continue) a CRC32 checksum over data.

    Args:
        data: Bytes to calculate CRC32 for.
        value: Running CRC32 of the data that precedes ``data``.

    Returns:
        CRC32 value as unsigned 32-bit integer.
    """
    return zlib.crc32(data, value) & 0xFFFFFFFF


def dos_datetime_to_timestamp(dos_date: int, dos_time: int) -> datetime:
    """Convert DOS date and time to Python datetime.

    DOS date format (16 bits):
        Bits 0-4: Day (1-31)
        Bits 5-8: Month (1-12)
        Bits 9-15: Year - 1980 (0-127, so 1980-2107)

    DOS time format (16 bits):
        Bits 0-4: Second / 2 (0-29, so 0-58 seconds in 2-second increments)
        Bits 5-10: Minute (0-59)
        Bits 11-15: Hour (0-23)

    Args:
        dos_date: DOS date value (16-bit unsigned integer).
        dos_time: DOS time value (16-bit unsigned integer).

    Returns:
        datetime object representing the DOS date/time.
    """
    day = dos_date & 0x1F
    month = (dos_date >> 5) & 0x0F
    year = ((dos_date >> 9) & 0x7F) + 1980

    second = (dos_time & 0x1F) * 2
    minute = (dos_time >> 5) & 0x3F
    hour = (dos_time >> 11) & 0x1F

    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        # Zeroed or garbage fields; fall back to the DOS epoch
        return datetime(1980, 1, 1, 0, 0, 0)


def decode_text(raw: bytes, flags: int) -> str:
    """Decode a filename or comment stored in the archive.

    UTF-8 is used when the UTF-8 flag is set. Otherwise UTF-8 is tried first and
    CP437, the historical ZIP encoding, is used when the bytes are not valid UTF-8.
    """
    if flags & FLAG_UTF8:
        return raw.decode("utf-8", errors="replace")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("cp437")


def uint16_at(data: bytes, offset: int) -> int:
    """Extract a little-endian 16-bit unsigned integer at ``offset``."""
    return struct.unpack_from("<H", data, offset)[0]


def read_exact(f: BinaryIO, size: int) -> bytes:
    """Read exactly 'size' bytes from file, raising ZipTruncatedError on short read.

    Short reads from the underlying stream are retried until it reports end of data.

    Args:
        f: Binary file-like object to read from.
        size: Number of bytes to read.

    Returns:
        Exactly 'size' bytes of data.

    Raises:
        ZipTruncatedError: If fewer than 'size' bytes could be read.
        ValueError: If size is negative.
    """
    if size < 0:
        raise ValueError(f"Invalid read size: {size} (must be non-negative)")

    data = f.read(size)
    if len(data) < size:
        chunks = [data]
        got = len(data)
        while got < size:
            chunk = f.read(size - got)
            if not chunk:
                break
            chunks.append(chunk)
            got += len(chunk)
        data = b"".join(chunks)

    if len(data) != size:
        raise ZipTruncatedError(
            f"Unexpected end of file: expected {size} bytes, got {len(data)}"
        )
    return data


def safe_extract_path(output_dir: Path, name: str) -> Path:
    """Compute the extraction target of an entry, refusing paths outside ``output_dir``.

    Backslashes are treated as separators and leading slashes are stripped, so
    absolute entry names are extracted relative to ``output_dir``.

    Raises:
        ZipFormatError: If the entry name escapes ``output_dir`` (e.g. via "..").
    """
    relative = name.replace("\\", "/").lstrip("/")
    base = output_dir.resolve()
    target = (base / relative).resolve()
    if target != base and base not in target.parents:
        raise ZipFormatError(f"Unsafe entry path: {name!r} escapes {output_dir}")
    return target
