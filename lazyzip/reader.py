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
ZIP archive reader implementation.

This module provides the ZipReader class for reading ZIP archives.
"""

import io
import logging
from typing import BinaryIO, Iterator, Optional, Union

from .constants import DIRECTORY_RECORD_COUNT_MODULUS
from .errors import ZipError, ZipFormatError
from .store import ByteStore, SectionReader, as_byte_store
from .stream import open_entry_stream
from .structures import DirectoryEnd, ZipEntry, find_eocd, parse_central_directory_header
from .utils import decode_text

logger = logging.getLogger(__name__)


class ZipReader:
    """Reader for ZIP archives.

    The central directory is decoded when the reader is created; entry contents
    are only read, decompressed and verified when an entry is opened. Entries can
    be opened and read from several threads at once.

    Example:
        with ZipReader("archive.zip") as z:
            print(z.namelist())
            data = z.open("file.txt").read()
    """

    def __init__(self, file: Union[str, BinaryIO, bytes, ByteStore], size: Optional[int] = None):
        """Initialize ZipReader with a path, file-like object, buffer or byte store.

        Args:
            file: Path to ZIP file, seekable binary file-like object, bytes-like
                object or ByteStore.
            size: Total size of the archive in bytes. Measured when omitted.

        Raises:
            ZipFormatError: If the data is not a valid ZIP archive.
        """
        # Only stores opened here from a path are closed by the reader
        self._should_close = isinstance(file, str) or hasattr(file, "__fspath__")
        self._store = as_byte_store(file, size)
        self._entries: list[ZipEntry] = []
        self._by_name: dict[str, ZipEntry] = {}
        self._eocd: Optional[DirectoryEnd] = None
        self._closed: bool = False

        # If parsing fails, close the file if we opened it
        try:
            self._parse_archive()
        except Exception:
            if self._should_close:
                self._store.close()
            raise

    def _parse_archive(self) -> None:
        """Parse the entire archive structure."""
        self._eocd = find_eocd(self._store)
        self._entries = self._read_central_directory(self._eocd)
        self._by_name = {entry.name: entry for entry in self._entries}

    def _read_central_directory(self, eocd: DirectoryEnd) -> list[ZipEntry]:
        """Parse the central directory into a list of entries.

        The record count in the EOCD is only 16 bits wide and wraps around for
        archives with more than 65535 entries, so it cannot be trusted as is.
        Records are read until one fails to parse; the failure is reported only
        if the number of records read, modulo 65536, differs from the count.

        Raises:
            ZipFormatError: If the central directory cannot be parsed.
        """
        section = SectionReader(
            self._store, eocd.cd_offset, self._store.size - eocd.cd_offset
        )
        f = io.BufferedReader(section)

        entries = []
        while True:
            try:
                entries.append(parse_central_directory_header(f))
            except ZipFormatError as e:
                error = e
                break

        if len(entries) % DIRECTORY_RECORD_COUNT_MODULUS != eocd.cd_records_total:
            raise error

        if len(entries) != eocd.cd_records_total:
            logger.debug(
                "Central directory holds %d records, EOCD count is %d (wrapped)",
                len(entries),
                eocd.cd_records_total,
            )
        logger.debug("Parsed %d central directory records at offset %d", len(entries), eocd.cd_offset)

        return entries

    @property
    def comment(self) -> str:
        """Archive comment, decoded."""
        return decode_text(self.raw_comment, 0)

    @property
    def raw_comment(self) -> bytes:
        return self._eocd.comment

    @property
    def size(self) -> int:
        return self._store.size

    def entries(self) -> list[ZipEntry]:
        """Entries in central directory order."""
        return list(self._entries)

    def namelist(self) -> list[str]:
        """List all entry names in the archive, in central directory order."""
        return [entry.name for entry in self._entries]

    def get_info(self, name: str) -> Optional[ZipEntry]:
        """Get metadata for a specific entry.

        Args:
            name: Entry name (must match exactly, including path separators).

        Returns:
            ZipEntry object if found (the last one, if the name repeats), None otherwise.
        """
        return self._by_name.get(name)

    def _resolve(self, entry: Union[str, ZipEntry]) -> ZipEntry:
        if isinstance(entry, ZipEntry):
            return entry
        found = self._by_name.get(entry)
        if found is None:
            raise KeyError(f"Entry not found: {entry}")
        return found

    def open(self, entry: Union[str, ZipEntry]) -> io.RawIOBase:
        """Open an entry for reading decompressed data.

        The returned stream verifies the CRC32 when it reaches the end of the data,
        so a checksum failure surfaces as ZipChecksumError from the read call that
        would otherwise have returned no data.

        Args:
            entry: ZipEntry or entry name to open.

        Returns:
            Read-only binary file-like object.

        Raises:
            ZipFormatError: If the archive is closed or the local header is invalid.
            KeyError: If entry is not found.
            ZipAlgorithmError: If compression method is not supported.
            ZipEncryptedError: If the entry is encrypted.
        """
        if self._closed:
            raise ZipFormatError("Archive is closed")

        return open_entry_stream(self._store, self._resolve(entry))

    def read(self, entry: Union[str, ZipEntry]) -> bytes:
        """Read and verify the whole contents of an entry."""
        with self.open(entry) as f:
            return f.read()

    def test(self) -> list[tuple[ZipEntry, ZipError]]:
        """Read every entry to the end.

        Returns:
            (entry, error) pairs for the entries that failed, in directory order.
        """
        failures = []
        for entry in self._entries:
            try:
                with self.open(entry) as f:
                    while f.read(io.DEFAULT_BUFFER_SIZE):
                        pass
            except ZipError as e:
                failures.append((entry, e))
        return failures

    def close(self) -> None:
        """Close the archive file, if the reader opened it."""
        if self._closed:
            return

        if self._should_close:
            self._store.close()
        self._closed = True

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ZipEntry]:
        return iter(self._entries)

    def __enter__(self) -> "ZipReader":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
