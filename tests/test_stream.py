import io
import os
import tempfile
import threading
import unittest
import zlib

from lazyzip import ZipReader
from lazyzip.errors import (
    ZipAlgorithmError,
    ZipChecksumError,
    ZipCompressionError,
    ZipEncryptedError,
    ZipFormatError,
    ZipTruncatedError,
)
from lazyzip.store import MemoryByteStore, SectionReader
from lazyzip.stream import ChecksumReader, DeflateReader, open_entry_stream

from zipbuilder import Member, body_offset, build_zip, deflate

PLAIN = b"".join(b"line %d of some fairly compressible text\n" % i for i in range(5000))
RANDOM = bytes((i * 2654435761 >> 13) & 0xFF for i in range(100000))


def _drain(f, size=4096):
    chunks = []
    while True:
        chunk = f.read(size)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def _flip_bit(data: bytes, pos: int) -> bytes:
    broken = bytearray(data)
    broken[pos] ^= 0x01
    return bytes(broken)


class StoredEntryTest(unittest.TestCase):
    def test_round_trip(self):
        z = ZipReader(build_zip([Member("a.bin", RANDOM)]))
        with z.open("a.bin") as f:
            self.assertEqual(f.read(), RANDOM)

    def test_round_trip_small_reads(self):
        z = ZipReader(build_zip([Member("a.bin", RANDOM)]))
        with z.open("a.bin") as f:
            self.assertEqual(_drain(f, 7), RANDOM)

    def test_empty(self):
        z = ZipReader(build_zip([Member("empty", b"")]))
        self.assertEqual(z.read("empty"), b"")

    def test_only_the_entry_body_is_read(self):
        z = ZipReader(build_zip([Member("a", b"first"), Member("b", b"second")]))
        self.assertEqual(z.read("a"), b"first")
        self.assertEqual(z.read("b"), b"second")


class DeflateEntryTest(unittest.TestCase):
    def test_round_trip(self):
        z = ZipReader(build_zip([Member("text", PLAIN, method=8)]))
        entry = z.get_info("text")
        self.assertLess(entry.compressed_size, len(PLAIN))
        self.assertEqual(z.read(entry), PLAIN)

    def test_round_trip_small_reads(self):
        z = ZipReader(build_zip([Member("text", PLAIN, method=8)]))
        with z.open("text") as f:
            self.assertEqual(_drain(f, 13), PLAIN)

    def test_incompressible(self):
        z = ZipReader(build_zip([Member("random", RANDOM, method=8)]))
        self.assertEqual(z.read("random"), RANDOM)

    def test_empty(self):
        z = ZipReader(build_zip([Member("empty", b"", method=8)]))
        self.assertEqual(z.read("empty"), b"")

    def test_truncated_stream(self):
        body = deflate(PLAIN)[:-10]
        z = ZipReader(build_zip([Member("text", PLAIN, method=8, body=body)]))
        with self.assertRaises(ZipCompressionError):
            z.read("text")

    def test_corrupt_stream(self):
        z = ZipReader(build_zip([Member("text", PLAIN, method=8, body=b"\xff" * 64)]))
        with self.assertRaises(ZipCompressionError):
            z.read("text")


class ChecksumTest(unittest.TestCase):
    def test_stored_bit_flip(self):
        archive = build_zip([Member("a.bin", RANDOM)])
        z = ZipReader(_flip_bit(archive, body_offset(archive) + 500))
        with self.assertRaises(ZipChecksumError):
            z.read("a.bin")

    def test_deflate_bit_flip(self):
        # Level 0 deflate keeps the data in stored blocks, so a flipped bit stays a valid stream
        archive = build_zip([Member("a.bin", RANDOM, method=8, body=deflate(RANDOM, level=0))])
        z = ZipReader(_flip_bit(archive, body_offset(archive) + 1000))
        with self.assertRaises(ZipChecksumError):
            z.read("a.bin")

    def test_wrong_directory_crc(self):
        z = ZipReader(build_zip([Member("a", b"abc", crc=0x12345678)]))
        with self.assertRaises(ZipChecksumError):
            z.read("a")

    def test_data_is_delivered_before_the_error(self):
        z = ZipReader(build_zip([Member("a", b"abcdef", crc=0)]))
        with z.open("a") as f:
            self.assertEqual(f.read(4), b"abcd")
            self.assertEqual(f.read(4), b"ef")
            with self.assertRaises(ZipChecksumError):
                f.read(4)
            # The failure is reported again, never a clean end of data
            with self.assertRaises(ZipChecksumError):
                f.read(4)

    def test_test_reports_failures(self):
        z = ZipReader(build_zip([Member("good", b"ok"), Member("bad", b"abc", crc=1), Member("odd", b"x", method=99)]))
        failures = z.test()
        self.assertEqual([entry.name for entry, _ in failures], ["bad", "odd"])
        self.assertIsInstance(failures[0][1], ZipChecksumError)
        self.assertIsInstance(failures[1][1], ZipAlgorithmError)


class OpenFailureTest(unittest.TestCase):
    def test_unsupported_method(self):
        z = ZipReader(build_zip([Member("a", b"abc", method=99)]))
        with self.assertRaises(ZipAlgorithmError):
            z.open("a")

    def test_encrypted(self):
        z = ZipReader(build_zip([Member("a", b"abc", flags=0x0001)]))
        with self.assertRaises(ZipEncryptedError):
            z.open("a")

    def test_bad_local_header(self):
        archive = build_zip([Member("a", b"abc")])
        z = ZipReader(b"XXXX" + archive[4:])
        with self.assertRaises(ZipFormatError):
            z.open("a")

    def test_bad_local_header_before_method_check(self):
        archive = build_zip([Member("a", b"abc", method=99)])
        z = ZipReader(b"XXXX" + archive[4:])
        with self.assertRaises(ZipFormatError):
            z.open("a")


class DataDescriptorTest(unittest.TestCase):
    def test_deflate_with_zero_sizes(self):
        archive = build_zip([Member("streamed", PLAIN, method=8, data_descriptor=True)])
        z = ZipReader(archive)
        entry = z.get_info("streamed")
        self.assertTrue(entry.has_data_descriptor)
        self.assertEqual((entry.crc32, entry.compressed_size, entry.uncompressed_size), (0, 0, 0))
        with z.open(entry) as f:
            data = _drain(f, 1000)
        self.assertEqual(len(data), len(PLAIN))
        self.assertEqual(zlib.crc32(data) & 0xFFFFFFFF, zlib.crc32(PLAIN) & 0xFFFFFFFF)

    def test_followed_by_other_entries(self):
        archive = build_zip(
            [
                Member("one", PLAIN, method=8, data_descriptor=True),
                Member("two", RANDOM, method=8, data_descriptor=True),
                Member("three", b"plain stored"),
            ]
        )
        z = ZipReader(archive)
        self.assertEqual(z.read("one"), PLAIN)
        self.assertEqual(z.read("two"), RANDOM)
        self.assertEqual(z.read("three"), b"plain stored")

    def test_descriptor_crc_is_authoritative(self):
        archive = build_zip([Member("a", PLAIN, method=8, data_descriptor=True, descriptor_crc=0xBADC0DE)])
        z = ZipReader(archive)
        with self.assertRaises(ZipChecksumError):
            z.read("a")

    def test_sizes_known_in_directory(self):
        archive = build_zip(
            [
                Member("deflated", PLAIN, method=8, data_descriptor=True, zero_central_fields=False),
                Member("stored", RANDOM, data_descriptor=True, zero_central_fields=False),
            ]
        )
        z = ZipReader(archive)
        self.assertEqual(z.read("deflated"), PLAIN)
        self.assertEqual(z.read("stored"), RANDOM)

    def test_descriptor_crc_used_even_with_directory_crc(self):
        archive = build_zip(
            [Member("a", b"abc", data_descriptor=True, zero_central_fields=False, descriptor_crc=1)]
        )
        with self.assertRaises(ZipChecksumError):
            ZipReader(archive).read("a")

    def test_missing_descriptor(self):
        archive = build_zip([Member("a", PLAIN, method=8, data_descriptor=True)])
        store = MemoryByteStore(archive)
        entry = ZipReader(store).get_info("a")
        # Cut the store right after the deflate stream
        cut = MemoryByteStore(archive, size=body_offset(archive) + len(deflate(PLAIN)))
        with open_entry_stream(cut, entry) as f:
            with self.assertRaises(ZipTruncatedError):
                _drain(f)

    def test_entry_is_not_modified(self):
        z = ZipReader(build_zip([Member("a", PLAIN, method=8, data_descriptor=True)]))
        entry = z.get_info("a")
        before = (entry.crc32, entry.compressed_size, entry.uncompressed_size)
        z.read(entry)
        z.read(entry)
        self.assertEqual((entry.crc32, entry.compressed_size, entry.uncompressed_size), before)
        self.assertIs(z.get_info("a"), entry)


class DeflateReaderTest(unittest.TestCase):
    def test_section_is_left_after_the_stream(self):
        compressed = deflate(PLAIN)
        store = MemoryByteStore(compressed + b"TRAILER")
        section = SectionReader(store, 0, store.size)
        reader = DeflateReader(section, chunk_size=1000)
        self.assertEqual(_drain(reader), PLAIN)
        self.assertEqual(section.tell(), len(compressed))
        self.assertEqual(section.read(), b"TRAILER")

    def test_zero_length_read(self):
        store = MemoryByteStore(deflate(b"abc"))
        reader = DeflateReader(SectionReader(store, 0, store.size))
        self.assertEqual(reader.readinto(bytearray()), 0)
        self.assertEqual(reader.read(), b"abc")


class ChecksumReaderTest(unittest.TestCase):
    def test_passthrough(self):
        z = ZipReader(build_zip([Member("a", b"abc")]))
        store = MemoryByteStore(b"abc")
        section = SectionReader(store, 0, 3)
        reader = ChecksumReader(section, z.get_info("a"), section)
        self.assertEqual(reader.read(), b"abc")
        self.assertEqual(reader.read(), b"")


class ConcurrentOpenTest(unittest.TestCase):
    def _check_concurrent(self, source):
        z = ZipReader(source)
        results = {}
        errors = []

        def worker(key, name, expected):
            try:
                with z.open(name) as f:
                    results[key] = _drain(f, 977) == expected
            except Exception as e:  # reported below
                errors.append(e)

        threads = []
        for i in range(8):
            name, expected = (("text", PLAIN), ("random", RANDOM), ("streamed", PLAIN))[i % 3]
            threads.append(threading.Thread(target=worker, args=(i, name, expected)))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(results, {i: True for i in range(8)})

    def _archive(self):
        return build_zip(
            [
                Member("text", PLAIN, method=8),
                Member("random", RANDOM),
                Member("streamed", PLAIN, method=8, data_descriptor=True),
            ]
        )

    def test_memory(self):
        self._check_concurrent(self._archive())

    def test_file(self):
        fd, path = tempfile.mkstemp(suffix=".zip")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(self._archive())
            with open(path, "rb") as f:
                self._check_concurrent(f)
        finally:
            os.unlink(path)

    def test_file_object_without_descriptor(self):
        self._check_concurrent(io.BytesIO(self._archive()))

    def test_interleaved_reads_of_the_same_entry(self):
        z = ZipReader(self._archive())
        a = z.open("text")
        b = z.open("text")
        chunks_a, chunks_b = [], []
        while True:
            ca, cb = a.read(100), b.read(333)
            chunks_a.append(ca)
            chunks_b.append(cb)
            if not ca and not cb:
                break
        self.assertEqual(b"".join(chunks_a), PLAIN)
        self.assertEqual(b"".join(chunks_b), PLAIN)
