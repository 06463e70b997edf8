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
Random-access byte stores and bounded views over them.

A byte store answers positioned reads (``read_at``) without relying on a shared
file cursor, so several entry streams can read the same archive at once. The
``SectionReader`` is a file-like view restricted to ``[offset, offset + length)``
of a store, with a read position of its own.
"""

import io
import os
import threading
from typing import BinaryIO, Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]


class ByteStore:
    """A random-access source of bytes with a known total size."""

    size: int

    def read_at(self, offset: int, size: int) -> bytes:
        """Read up to ``size`` bytes starting at ``offset``.

        Fewer bytes are returned only when the end of the store is reached.
        """
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryByteStore(ByteStore):
    """Byte store backed by an in-memory buffer (bytes, bytearray, mmap...)."""

    def __init__(self, data: BytesLike, size: Optional[int] = None):
        self._view = memoryview(data).cast("B")
        self.size = len(self._view) if size is None else size

    def read_at(self, offset: int, size: int) -> bytes:
        end = min(offset + size, self.size)
        if offset >= end:
            return b""
        return bytes(self._view[offset:end])

    def close(self) -> None:
        self._view.release()


class FileByteStore(ByteStore):
    """Byte store backed by a seekable binary file object.

    Files with a real descriptor are read with ``os.pread``, which leaves the
    file position alone. Other file objects are read with seek + read under a
    lock.
    """

    def __init__(self, file: BinaryIO, size: Optional[int] = None, owned: bool = False):
        if not hasattr(file, "read"):
            raise TypeError("File-like object must have a read() method")
        if not hasattr(file, "seek"):
            raise TypeError("File-like object must have a seek() method")

        self._file = file
        self._owned = owned
        self._lock = threading.Lock()
        self._fd = _positional_fd(file)
        self.size = self._measure() if size is None else size

    def _measure(self) -> int:
        with self._lock:
            position = self._file.tell()
            self._file.seek(0, io.SEEK_END)
            size = self._file.tell()
            self._file.seek(position)
        return size

    def read_at(self, offset: int, size: int) -> bytes:
        size = min(size, self.size - offset)
        if size <= 0:
            return b""

        if self._fd is not None:
            chunks = []
            while size > 0:
                chunk = os.pread(self._fd, size, offset)
                if not chunk:
                    break
                chunks.append(chunk)
                offset += len(chunk)
                size -= len(chunk)
            return b"".join(chunks)

        with self._lock:
            self._file.seek(offset)
            return self._file.read(size)

    def close(self) -> None:
        if self._owned:
            self._file.close()


class BoundedByteStore(ByteStore):
    """View of the first ``size`` bytes of another store.

    The wrapped store is borrowed; closing the view leaves it open.
    """

    def __init__(self, store: ByteStore, size: int):
        self._store = store
        self.size = size

    def read_at(self, offset: int, size: int) -> bytes:
        size = min(size, self.size - offset)
        if size <= 0:
            return b""
        return self._store.read_at(offset, size)


def _positional_fd(file: BinaryIO) -> Optional[int]:
    if not hasattr(os, "pread"):
        return None
    try:
        fd = file.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return None
    try:
        os.pread(fd, 0, 0)
    except OSError:
        # Pipes and some special files refuse positioned reads
        return None
    return fd


def as_byte_store(source, size: Optional[int] = None) -> ByteStore:
    """Adapt ``source`` to a ByteStore.

    Args:
        source: A ByteStore, a bytes-like object (including ``mmap``), a path, or
            a seekable binary file object.
        size: Total size of the store. Measured when omitted.

    Returns:
        A ByteStore. Stores created from a path own (and close) the file.
    """
    if isinstance(source, ByteStore):
        if size is not None and size != source.size:
            return BoundedByteStore(source, size)
        return source

    if hasattr(source, "__fspath__") or isinstance(source, str):
        return FileByteStore(open(os.fspath(source), "rb"), size, owned=True)

    if hasattr(source, "read"):
        return FileByteStore(source, size)

    return MemoryByteStore(source, size)


class SectionReader(io.RawIOBase):
    """Read-only file-like view of ``length`` bytes of a store, starting at ``offset``.

    Every view has its own position; views never share read state.
    """

    def __init__(self, store: ByteStore, offset: int, length: int):
        super().__init__()
        self._store = store
        self._start = offset
        self._length = max(0, length)
        self._pos = 0

    @property
    def start(self) -> int:
        return self._start

    @property
    def length(self) -> int:
        return self._length

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._pos + offset
        elif whence == io.SEEK_END:
            position = self._length + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if position < 0:
            raise ValueError(f"Negative seek position: {position}")
        self._pos = position
        return position

    def view_from_position(self, length: int) -> "SectionReader":
        """Return a new view of ``length`` bytes starting at the current position.

        The new view is not limited by the end of this one.
        """
        return SectionReader(self._store, self._start + self._pos, length)

    def readinto(self, b) -> int:
        wanted = min(len(b), self._length - self._pos)
        if wanted <= 0:
            return 0
        data = self._store.read_at(self._start + self._pos, wanted)
        n = len(data)
        b[:n] = data
        self._pos += n
        return n
