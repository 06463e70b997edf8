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
ZIP format constants including signatures, record layouts, compression methods and flags.

This module defines all the constants used throughout the library for locating and
decoding the records of a ZIP archive, plus the few tunables of the reader.
"""

# ZIP record signatures (magic numbers)
LOCAL_FILE_HEADER = 0x04034B50  # "PK\x03\x04"
CENTRAL_DIR_HEADER = 0x02014B50  # "PK\x01\x02"
END_OF_CENTRAL_DIR = 0x06054B50  # "PK\x05\x06"

END_OF_CENTRAL_DIR_MAGIC = b"PK\x05\x06"

# Compression methods
COMP_STORED = 0  # No compression
COMP_DEFLATE = 8  # Deflate compression (zlib, raw stream)

# Compression method names (for display)
COMPRESSION_STORED = "stored"
COMPRESSION_DEFLATE = "deflate"

METHOD_TO_NAME = {
    COMP_STORED: COMPRESSION_STORED,
    COMP_DEFLATE: COMPRESSION_DEFLATE,
}

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001  # File is encrypted
FLAG_DATA_DESCRIPTOR = 0x0008  # Data descriptor follows file data
FLAG_UTF8 = 0x0800  # UTF-8 encoding for filename/comment

# The directory record count is a 16-bit field and wraps for very large archives
DIRECTORY_RECORD_COUNT_MODULUS = 0x10000

# Local file header (fixed part, excluding filename/extra)
LOCAL_FILE_HEADER_SIZE = 30
LOCAL_FILE_HEADER_FORMAT = "<IHHHHHIIIHH"

# Central directory header (fixed part, excluding filename/extra/comment)
CENTRAL_DIR_HEADER_SIZE = 46
CENTRAL_DIR_HEADER_FORMAT = "<IHHHHHHIIIHHHHHII"

# End of central directory (fixed part, excluding comment)
END_OF_CENTRAL_DIR_SIZE = 22
END_OF_CENTRAL_DIR_FORMAT = "<IHHHHIIH"

# Data descriptor written after the entry body (no signature is expected)
DATA_DESCRIPTOR_SIZE = 12
DATA_DESCRIPTOR_FORMAT = "<III"

# Tail sizes searched, in order, for the end of central directory record. The
# second one covers the largest possible comment (65535 bytes) plus the record.
DIRECTORY_END_SEARCH_WINDOWS = (1024, 65 * 1024)

# Amount of compressed input fed to the inflate transform per read
READ_CHUNK_SIZE = 32 * 1024
