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
LAZYZIP - Pure Python streaming ZIP reader.

This library decodes the central directory of a ZIP archive held in any
random-access byte source and streams the decompressed, CRC-verified contents
of its entries on demand, using only Python standard library modules.
"""

from .errors import (
    ZipAlgorithmError,
    ZipChecksumError,
    ZipCompressionError,
    ZipEncryptedError,
    ZipError,
    ZipFormatError,
    ZipTruncatedError,
    ZipUnsupportedFeature,
)
from .reader import ZipReader
from .store import BoundedByteStore, ByteStore, FileByteStore, MemoryByteStore, SectionReader
from .structures import ZipEntry

__all__ = [
    "ZipReader",
    "ZipEntry",
    "BoundedByteStore",
    "ByteStore",
    "FileByteStore",
    "MemoryByteStore",
    "SectionReader",
    "ZipError",
    "ZipFormatError",
    "ZipTruncatedError",
    "ZipUnsupportedFeature",
    "ZipAlgorithmError",
    "ZipEncryptedError",
    "ZipChecksumError",
    "ZipCompressionError",
]

__version__ = "0.1.0"
