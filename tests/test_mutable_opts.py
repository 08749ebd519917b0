"""Tests for options filled in after a stream is created."""

import base64
import hashlib

import pytest

from sriguard import (
    IntegrityMismatchError,
    IntegrityOptions,
    SizeMismatchError,
    from_data,
    integrity_stream,
)

TEST_DATA = b"late-bound options fixture" * 10


def _hash(data: bytes, algorithm: str) -> str:
    return base64.b64encode(hashlib.new(algorithm, data).digest()).decode()


class TestMutableOptions:
    """Tests for integrity and size supplied after construction."""

    def test_integrity_set_late(self):
        """Test verifying against an integrity assigned before end."""
        opts = IntegrityOptions()
        stream = integrity_stream(opts)
        stream.write(TEST_DATA[:5])

        opts.integrity = from_data(TEST_DATA)
        stream.end(TEST_DATA[5:])

        assert stream.verified.algorithm == "sha512"

    def test_integrity_set_late_mismatch(self):
        """Test that a late target is still enforced."""
        opts = IntegrityOptions()
        stream = integrity_stream(opts)
        stream.write(TEST_DATA)

        opts.integrity = f"sha512-{_hash(b'nope', 'sha512')}"

        with pytest.raises(IntegrityMismatchError):
            stream.end()

    def test_size_set_late(self):
        """Test that a late size is enforced."""
        opts = IntegrityOptions()
        stream = integrity_stream(opts)
        stream.write(TEST_DATA)

        opts.size = len(TEST_DATA) + 1

        with pytest.raises(SizeMismatchError):
            stream.end()

    def test_correct_size_set_late(self):
        """Test that a correct late size passes."""
        opts = IntegrityOptions()
        stream = integrity_stream(opts)
        stream.write(TEST_DATA)

        opts.size = len(TEST_DATA)
        opts.integrity = f"sha512-{_hash(TEST_DATA, 'sha512')}"

        assert stream.end().verified

    def test_algorithms_read_on_first_chunk(self):
        """Test that algorithms may change until data arrives."""
        opts = IntegrityOptions()
        stream = integrity_stream(opts)
        opts.algorithms = ["sha256"]
        stream.write(TEST_DATA)

        opts.algorithms = ["sha1"]
        stream.end()

        assert stream.integrity.algorithms == ["sha256"]

    def test_target_set_before_first_chunk(self):
        """Test that a target known before data arrives adds its algorithm."""
        opts = IntegrityOptions(algorithms=["sha256"])
        stream = integrity_stream(opts)
        opts.integrity = f"sha384-{_hash(TEST_DATA, 'sha384')}"

        stream.end(TEST_DATA)

        assert stream.verified.algorithm == "sha384"

    def test_picker_set_late(self):
        """Test that the picker is read at finalization."""
        opts = IntegrityOptions(algorithms=["sha1", "sha512"])
        stream = integrity_stream(opts)
        stream.write(TEST_DATA)

        opts.integrity = f"sha1-{_hash(TEST_DATA, 'sha1')} sha512-{_hash(b'nope', 'sha512')}"
        opts.pick_algorithm = lambda a, b: "sha1"

        assert stream.end().verified.algorithm == "sha1"
