"""Tests for merging integrity collections."""

import pytest

from sriguard import MergeConflictError, parse


class TestIntegrityMerge:
    """Tests for Integrity.merge."""

    def test_adds_new_algorithms(self):
        """Test merging disjoint algorithm sets."""
        sri = parse("sha1-foo")
        sri.merge(parse("sha512-bar"))

        assert str(sri) == "sha1-foo sha512-bar"

    def test_merges_in_place(self):
        """Test that merge mutates and returns the receiver."""
        sri = parse("sha1-foo")

        assert sri.merge("sha512-bar") is sri
        assert "sha512" in sri

    def test_shared_digest_upgrades(self):
        """Test that a shared digest allows new entries in."""
        sri = parse("sha1-foo")
        sri.merge("sha1-foo sha1-bar sha512-baz")

        assert str(sri) == "sha1-foo sha1-bar sha512-baz"

    def test_conflict_raises(self):
        """Test that disagreeing digests refuse to merge."""
        sri = parse("sha1-foo")

        with pytest.raises(MergeConflictError) as excinfo:
            sri.merge("sha1-baz")

        assert excinfo.value.code == "EMERGECONFLICT"
        assert str(excinfo.value) == "hashes do not match, cannot update integrity"
        assert str(sri) == "sha1-foo"

    def test_conflict_on_any_shared_algorithm(self):
        """Test that one conflicting algorithm aborts the whole merge."""
        sri = parse("sha1-foo sha512-bar")

        with pytest.raises(MergeConflictError):
            sri.merge("sha1-foo sha512-nope sha256-new")

        assert "sha256" not in sri

    def test_merge_hash_like(self):
        """Test merging a single hash entry."""
        sri = parse("sha512-foo")
        sri.merge(parse("sha1-bar", single=True))

        assert str(sri) == "sha512-foo sha1-bar"

    def test_merge_empty(self):
        """Test that merging nothing changes nothing."""
        sri = parse("sha512-foo")
        sri.merge("")
        sri.merge(None)

        assert str(sri) == "sha512-foo"

    def test_merge_strict(self):
        """Test that strict merging skips entries outside the strict grammar."""
        sri = parse("sha512-abcd")
        sri.merge("sha1-foo sha256-abcd", strict=True)

        assert str(sri) == "sha512-abcd sha256-abcd"

    def test_merge_logs_conflict(self, monkeypatch):
        """Test that conflicts are recorded by the integrity logger."""
        from sriguard.integrations import logging as sri_logging

        logger = sri_logging.IntegrityLogger(name="sriguard.test.merge", level="DEBUG")
        monkeypatch.setattr(sri_logging, "_default_logger", logger)

        with pytest.raises(MergeConflictError):
            parse("sha1-foo").merge("sha1-bar")

        events = logger.get_recent_events()
        assert len(events) == 1
        assert events[0].event_type == sri_logging.IntegrityEventType.MERGE_CONFLICT
        assert events[0].details["algorithm"] == "sha1"
