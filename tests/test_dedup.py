"""Bounded FIFO duplicate cache."""

import pytest

from bannerbot.core.dedup import DedupCache, content_hash
from bannerbot.core.models import BannerIdentity


def test_evicts_oldest_beyond_capacity():
    cache = DedupCache(capacity=5)
    images = [f"image-{i}".encode() for i in range(6)]

    for image in images:
        assert not cache.is_duplicate(image)

    assert len(cache) == 5
    assert content_hash(images[0]) not in cache
    assert cache.hashes == [content_hash(image) for image in images[1:]]


def test_repeat_is_a_hit_without_growth():
    cache = DedupCache(capacity=3)

    assert cache.is_duplicate(b"same") is False
    assert cache.is_duplicate(b"same") is True
    assert len(cache) == 1


def test_eviction_is_fifo_not_lru():
    cache = DedupCache(capacity=2)
    cache.is_duplicate(b"a")
    cache.is_duplicate(b"b")
    # A hit does not refresh the entry.
    assert cache.is_duplicate(b"a")
    cache.is_duplicate(b"c")

    assert content_hash(b"a") not in cache
    assert content_hash(b"b") in cache


def test_identity_suppression_and_reset():
    cache = DedupCache()
    x = BannerIdentity.X

    assert not cache.should_suppress_by_identity(x, "X BANNER")
    cache.record_sent(x, "X BANNER")
    assert cache.should_suppress_by_identity(x, "X BANNER")
    assert not cache.should_suppress_by_identity(BannerIdentity.Y, "Y BANNER")

    cache.is_duplicate(b"img")
    cache.reset()
    assert len(cache) == 0
    assert cache.last_sent(x) is None


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        DedupCache(capacity=0)


def test_identity_reset_keeps_hash_history():
    cache = DedupCache()
    x = BannerIdentity.X
    cache.is_duplicate(b"img")
    cache.record_sent(x, "X BANNER")

    cache.reset_identities()

    assert cache.last_sent(x) is None
    assert cache.is_duplicate(b"img")
