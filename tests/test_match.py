"""Tests for matching integrity values against each other."""

import base64
import hashlib

from sriguard import HashEntry, from_data, parse

TEST_DATA = b"match fixture"


def _hash(data: bytes, algorithm: str) -> str:
    return base64.b64encode(hashlib.new(algorithm, data).digest()).decode()


class TestHashEntryMatch:
    """Tests for HashEntry.match."""

    def test_matches_same_digest(self):
        """Test that an entry matches an integrity carrying its digest."""
        integrity = f"sha512-{_hash(TEST_DATA, 'sha512')}"
        entry = parse(integrity, single=True)

        assert entry.match(integrity) is entry
        assert entry.match(parse(integrity)) is entry

    def test_different_algorithm(self):
        """Test that other algorithms never match."""
        entry = parse(f"sha512-{_hash(TEST_DATA, 'sha512')}", single=True)

        assert entry.match("sha-233") is False
        assert entry.match(f"sha1-{_hash(TEST_DATA, 'sha1')}") is False

    def test_no_input(self):
        """Test matching against nothing."""
        entry = parse("sha512-foo", single=True)

        assert entry.match(None) is False
        assert entry.match("") is False

    def test_invalid_entry(self):
        """Test that an invalid entry matches nothing."""
        assert HashEntry().match("sha512-foo") is False


class TestIntegrityMatch:
    """Tests for Integrity.match."""

    def test_finds_shared_digest(self):
        """Test matching on the strongest shared algorithm."""
        sri = parse(
            f"sha1-{_hash(TEST_DATA, 'sha1')} sha512-{_hash(TEST_DATA, 'sha512')}"
        )
        match = sri.match(f"sha512-{_hash(TEST_DATA, 'sha512')}")

        assert match == parse(f"sha512-{_hash(TEST_DATA, 'sha512')}", single=True)
        assert match == sri["sha512"][0]

    def test_returns_our_entry(self):
        """Test that the returned entry comes from the receiver."""
        ours = parse("sha512-foo?ours")
        match = ours.match("sha512-foo?theirs")

        assert match.options == ("ours",)

    def test_no_shared_algorithm(self):
        """Test that disjoint algorithm sets never match."""
        sri = parse("sha512-foo")

        assert sri.match("sha1-foo") is False
        assert sri.match("") is False
        assert sri.match(None) is False

    def test_picked_algorithm_must_agree(self):
        """Test that only the picked shared algorithm is compared."""
        sri = parse("sha1-foo sha512-bar")

        assert sri.match("sha1-foo sha512-baz") is False
        assert sri.match("sha1-foo sha512-baz", pick_algorithm=lambda a, b: "sha1").digest == "foo"

    def test_any_digest_of_group(self):
        """Test that any of their digests for the algorithm counts."""
        sri = parse("sha512-foo sha512-bar")

        assert sri.match("sha512-baz sha512-bar").digest == "bar"

    def test_allow_list(self):
        """Test restricting the algorithms considered."""
        sri = parse("sha1-foo sha512-bar")

        assert sri.match("sha1-foo sha512-bar", algorithms=["sha1"]).algorithm == "sha1"
        assert sri.match("sha1-foo sha512-bar", algorithms=["sha256"]) is False

    def test_from_data_matches(self):
        """Test matching computed integrity against an expected string."""
        computed = from_data(TEST_DATA, algorithms=["sha256", "sha512"])

        assert computed.match(f"sha256-{_hash(TEST_DATA, 'sha256')}").algorithm == "sha256"
        assert computed.match(f"sha256-{_hash(b'other', 'sha256')}") is False

    def test_match_is_symmetric(self):
        """Test that matching succeeds in both directions."""
        a = parse("sha512-foo sha1-bar")
        b = parse("sha512-foo")

        assert bool(a.match(b)) == bool(b.match(a))
