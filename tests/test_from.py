"""Tests for building integrity from hex digests, buffers and streams."""

import asyncio
import base64
import hashlib
import io

import pytest

from sriguard import HashEntry, Integrity, from_data, from_hex, from_stream

TEST_DATA = b"from-data fixture\n" * 64

SHA256_HI = "j0NDRmSPa5bfid2pAcUXaxCm2Dlh3TwayItZstwyeqQ="
SHA384_HI = "B5EAbfgShHckT1PQ/c4hDbgfVXV1EOJqzuNcGKa86qKNzbv9bcBBubTcextU439S"
SHA512_HI = "FQoU7VvqbMcxz4bEFWasQnqNtI7xuf1iZmSzv7uZBx+kySLzPd44cZuMg1Tit6udd+Dmf8EoQ5IKcS5z1Vjhlw=="


def _hash(data: bytes, algorithm: str) -> str:
    return base64.b64encode(hashlib.new(algorithm, data).digest()).decode()


class TestFromHex:
    """Tests for from_hex."""

    def test_hex_to_integrity(self):
        """Test wrapping a hex digest."""
        assert str(from_hex("deadbeef", "sha1")) == "sha1-3q2+7w=="

    def test_hex_options(self):
        """Test attaching options."""
        assert str(from_hex("deadbeef", "sha512", options=["a", "b"])) == "sha512-3q2+7w==?a?b"

    def test_single(self):
        """Test returning the bare entry."""
        entry = from_hex("deadbeef", "sha1", single=True)

        assert isinstance(entry, HashEntry)
        assert entry.digest == "3q2+7w=="

    def test_strict_rejects_weak_algorithm(self):
        """Test that strict mode drops algorithms outside the strict set."""
        assert from_hex("deadbeef", "sha1", strict=True).is_empty()

    def test_real_digest(self):
        """Test that a real hex digest round-trips through hex_digest."""
        hex_value = hashlib.sha256(TEST_DATA).hexdigest()
        sri = from_hex(hex_value, "sha256")

        assert sri.hex_digest() == hex_value
        assert str(sri) == f"sha256-{_hash(TEST_DATA, 'sha256')}"

    def test_invalid_hex(self):
        """Test that non-hex input is rejected."""
        with pytest.raises(ValueError):
            from_hex("not hex", "sha256")


class TestFromData:
    """Tests for from_data."""

    def test_default_algorithm(self):
        """Test that sha512 is used by default."""
        assert str(from_data(TEST_DATA)) == f"sha512-{_hash(TEST_DATA, 'sha512')}"

    def test_known_digests(self):
        """Test well-known digests of a short string."""
        sri = from_data("hi", algorithms=["sha256", "sha384", "sha512"])

        assert str(sri) == f"sha256-{SHA256_HI} sha384-{SHA384_HI} sha512-{SHA512_HI}"

    def test_string_is_utf8(self):
        """Test that strings are hashed as UTF-8."""
        text = "café ☕"

        assert from_data(text) == from_data(text.encode("utf-8"))

    def test_multiple_algorithms(self):
        """Test computing several algorithms at once."""
        sri = from_data(TEST_DATA, algorithms=["sha1", "sha512"])

        assert str(sri) == (
            f"sha1-{_hash(TEST_DATA, 'sha1')} sha512-{_hash(TEST_DATA, 'sha512')}"
        )

    def test_duplicate_algorithms(self):
        """Test that duplicate requests yield duplicate entries."""
        sri = from_data(TEST_DATA, algorithms=["sha256", "sha256"])

        assert len(sri["sha256"]) == 2

    def test_options(self):
        """Test attaching options to every entry."""
        sri = from_data(TEST_DATA, algorithms=["sha256", "sha512"], options=["foo", "bar"])

        assert all(entry.options == ("foo", "bar") for entry in sri.entries())
        assert str(sri).endswith("?foo?bar")

    def test_strict(self):
        """Test that strict mode drops non-strict algorithms."""
        sri = from_data(TEST_DATA, algorithms=["sha1", "sha256"], strict=True)

        assert sri.algorithms == ["sha256"]

    def test_empty_data(self):
        """Test hashing an empty buffer."""
        assert str(from_data(b"", algorithms=["sha256"])) == f"sha256-{_hash(b'', 'sha256')}"

    def test_unsupported_algorithm(self):
        """Test that unknown algorithms raise."""
        with pytest.raises(ValueError):
            from_data(TEST_DATA, algorithms=["not-a-hash"])

    def test_accepts_memoryview(self):
        """Test hashing a memoryview."""
        assert from_data(memoryview(TEST_DATA)) == from_data(TEST_DATA)


class TestFromStream:
    """Tests for from_stream."""

    def test_file_object(self, tmp_path):
        """Test hashing a file opened for reading."""
        path = tmp_path / "fixture.bin"
        path.write_bytes(TEST_DATA)

        with open(path, "rb") as fh:
            sri = asyncio.run(from_stream(fh))

        assert sri == from_data(TEST_DATA)

    def test_multiple_algorithms(self):
        """Test hashing a stream with several algorithms."""
        sri = asyncio.run(
            from_stream(io.BytesIO(TEST_DATA), algorithms=["sha1", "sha256"], options=["x"])
        )

        assert str(sri) == (
            f"sha1-{_hash(TEST_DATA, 'sha1')}?x sha256-{_hash(TEST_DATA, 'sha256')}?x"
        )

    def test_async_iterable(self):
        """Test hashing an async generator."""

        async def chunks():
            for i in range(0, len(TEST_DATA), 100):
                yield TEST_DATA[i:i + 100]

        assert asyncio.run(from_stream(chunks())) == from_data(TEST_DATA)

    def test_stream_reader(self):
        """Test hashing an asyncio.StreamReader."""

        async def run():
            reader = asyncio.StreamReader()
            reader.feed_data(TEST_DATA)
            reader.feed_eof()
            return await from_stream(reader)

        assert asyncio.run(run()) == from_data(TEST_DATA)

    def test_sync_iterable(self):
        """Test hashing a plain list of chunks."""
        parts = [b"hel", "lo", bytearray(b" world")]

        assert asyncio.run(from_stream(parts)) == from_data(b"hello world")

    def test_empty_stream(self):
        """Test hashing a stream with no data."""
        sri = asyncio.run(from_stream(io.BytesIO(b""), algorithms=["sha256"]))

        assert isinstance(sri, Integrity)
        assert str(sri) == f"sha256-{_hash(b'', 'sha256')}"

    def test_source_error_propagates(self):
        """Test that source failures reject the call."""

        async def broken():
            yield b"partial"
            raise OSError("disk went away")

        with pytest.raises(OSError, match="disk went away"):
            asyncio.run(from_stream(broken()))
