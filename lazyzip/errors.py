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
Custom exception classes for the ZIP reader.

This module defines specific exception types for the different error conditions
that can occur when decoding a ZIP archive or streaming one of its entries.
"""


class ZipError(Exception):
    """Base exception class for all ZIP-related errors."""

    pass


class ZipFormatError(ZipError):
    """Raised when a ZIP file has an invalid format or structure.

    This exception is raised when:
    - The end of central directory record cannot be found
    - A central directory or local header signature is wrong
    - The central directory holds the wrong number of records
    """

    pass


class ZipTruncatedError(ZipFormatError):
    """Raised when the data ends before a fixed-size structure is complete."""

    pass


class ZipUnsupportedFeature(ZipError):
    """Raised when encountering a ZIP feature this reader does not implement."""

    pass


class ZipAlgorithmError(ZipUnsupportedFeature):
    """Raised when an entry uses a compression method other than stored or deflate.

    It is raised when the entry is opened, before any data is streamed.
    """

    pass


class ZipEncryptedError(ZipUnsupportedFeature):
    """Raised when opening an entry that has the encryption flag set."""

    pass


class ZipChecksumError(ZipError):
    """Raised when CRC32 checksum validation fails.

    This exception is raised at the end of an entry stream, when the CRC32 of
    the delivered data does not match the CRC32 stored in the archive (or in
    the entry's data descriptor).
    """

    pass


class ZipCompressionError(ZipError):
    """Raised when decompression fails.

    This exception is raised when:
    - The deflate stream is corrupted
    - The compressed data ends before the deflate stream is complete
    """

    pass
