"""Redelivery de-duplication tests."""

import pytest

from transport.messenger.dedupe import MessageDeduplicator


class TestMessageDeduplicator:
    def test_first_sighting_is_new(self):
        dedupe = MessageDeduplicator()

        assert dedupe.seen("mid.1") is False
        assert dedupe.seen("mid.1") is True
        assert len(dedupe) == 1

    def test_missing_id_never_duplicate(self):
        dedupe = MessageDeduplicator()

        assert dedupe.seen(None) is False
        assert dedupe.seen(None) is False
        assert dedupe.seen("") is False
        assert len(dedupe) == 0

    def test_capacity_evicts_oldest(self):
        dedupe = MessageDeduplicator(capacity=2)
        dedupe.seen("a")
        dedupe.seen("b")
        dedupe.seen("c")

        assert len(dedupe) == 2
        assert dedupe.seen("a") is False

    def test_recent_hit_refreshes_entry(self):
        dedupe = MessageDeduplicator(capacity=2)
        dedupe.seen("a")
        dedupe.seen("b")
        dedupe.seen("a")
        dedupe.seen("c")

        assert dedupe.seen("a") is True
        assert dedupe.seen("b") is False

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            MessageDeduplicator(capacity=0)
