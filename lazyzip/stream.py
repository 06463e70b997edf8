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
Streaming decompression of ZIP entries.

An entry stream is three nested readers, each owning the one below it:

    ChecksumReader -> (DeflateReader | passthrough) -> SectionReader

The section reader bounds the entry body, the middle layer undoes the compression,
and the checksum reader computes the CRC32 of everything it hands out and checks it
once the data is exhausted. Nothing is shared between two streams, so any number of
them can be read at the same time.
"""

import io
import logging
import zlib

from .constants import COMP_DEFLATE, COMP_STORED, DATA_DESCRIPTOR_SIZE, READ_CHUNK_SIZE
from .errors import ZipAlgorithmError, ZipChecksumError, ZipCompressionError, ZipEncryptedError
from .store import ByteStore, SectionReader
from .structures import ZipEntry, find_body_offset, parse_data_descriptor
from .utils import crc32

logger = logging.getLogger(__name__)


class DeflateReader(io.RawIOBase):
    """Decompress a raw deflate stream read from a section of the archive.

    Compressed input is pulled in chunks, and only as far as the end of the
    deflate stream. Once the stream ends, the section is rewound to the first
    byte after it, so whatever follows (a data descriptor) can be read from
    there.
    """

    def __init__(self, raw: SectionReader, chunk_size: int = READ_CHUNK_SIZE):
        super().__init__()
        self._raw = raw
        self._chunk_size = chunk_size
        self._decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self._eof or len(b) == 0:
            return 0

        while True:
            if self._decompressor.unconsumed_tail:
                data = self._decompressor.unconsumed_tail
            else:
                # Empty once the section is exhausted; zlib may still hold output
                data = self._raw.read(self._chunk_size)

            try:
                out = self._decompressor.decompress(data, len(b))
            except zlib.error as e:
                raise ZipCompressionError(f"Deflate decompression failed: {e}") from e

            if self._decompressor.eof:
                self._finish()

            if out:
                b[: len(out)] = out
                return len(out)
            if self._eof:
                return 0
            if not data:
                raise ZipCompressionError("Unexpected end of compressed data")

    def _finish(self) -> None:
        self._eof = True
        unused = len(self._decompressor.unused_data)
        if unused:
            self._raw.seek(-unused, io.SEEK_CUR)

    def close(self) -> None:
        self._raw.close()
        super().close()


class ChecksumReader(io.RawIOBase):
    """Compute the CRC32 of the data read through it and verify it at the end.

    When the inner stream is exhausted, the expected CRC32 is taken from the
    entry, or, for entries with a data descriptor, from the descriptor that
    follows the compressed body in ``section``. On a mismatch, the read that
    would have signalled end of data raises ZipChecksumError instead, and so
    does every later read. Data returned before that point is not taken back.
    """

    def __init__(self, inner: io.RawIOBase, entry: ZipEntry, section: SectionReader):
        super().__init__()
        self._inner = inner
        self._entry = entry
        self._section = section
        self._crc = 0
        self._done = False
        self._error = None

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self._error is not None:
            raise ZipChecksumError(self._error)
        if self._done:
            return 0

        n = self._inner.readinto(b)
        if n:
            self._crc = crc32(memoryview(b)[:n], self._crc)
            return n
        if len(b) == 0:
            return 0

        self._verify()
        self._done = True
        return 0

    def _verify(self) -> None:
        expected = self._entry.crc32
        if self._entry.has_data_descriptor:
            descriptor = parse_data_descriptor(self._section.view_from_position(DATA_DESCRIPTOR_SIZE))
            logger.debug(
                "Data descriptor for %r: crc=0x%08X compressed=%d uncompressed=%d",
                self._entry.name,
                descriptor.crc32,
                descriptor.compressed_size,
                descriptor.uncompressed_size,
            )
            expected = descriptor.crc32

        if self._crc != expected:
            self._error = (
                f"CRC32 mismatch for entry '{self._entry.name}': "
                f"expected 0x{expected:08X}, got 0x{self._crc:08X}"
            )
            raise ZipChecksumError(self._error)

    def close(self) -> None:
        self._inner.close()
        self._section.close()
        super().close()


_DECOMPRESSORS = {
    COMP_STORED: lambda section: section,
    COMP_DEFLATE: DeflateReader,
}


def open_entry_stream(store: ByteStore, entry: ZipEntry) -> ChecksumReader:
    """Open a verified stream of the decompressed contents of ``entry``.

    Args:
        store: The archive bytes.
        entry: Entry taken from the archive's central directory.

    Returns:
        A read-only binary stream. Reading it to the end verifies the CRC32.

    Raises:
        ZipFormatError: If the local file header is invalid.
        ZipAlgorithmError: If the compression method is not stored or deflate.
        ZipEncryptedError: If the entry is encrypted.
    """
    if entry.is_encrypted:
        raise ZipEncryptedError(f"Entry '{entry.name}' is encrypted (encryption not supported)")

    body_offset = entry.header_offset + find_body_offset(store, entry.header_offset)

    decompressor = _DECOMPRESSORS.get(entry.compression_method)
    if decompressor is None:
        raise ZipAlgorithmError(
            f"Unsupported compression method {entry.compression_method} for entry '{entry.name}'"
        )

    size = entry.compressed_size
    if size == 0 and entry.has_data_descriptor:
        # Size unknown until the descriptor is read; let the body run to the end of the archive
        size = store.size - body_offset

    section = SectionReader(store, body_offset, size)
    return ChecksumReader(decompressor(section), entry, section)
