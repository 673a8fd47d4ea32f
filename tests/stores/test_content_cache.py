"""Tests for the content-hash cache."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from readmeci.stores import ContentCache, content_hash


def test_content_hash_is_sha256_hex() -> None:
    digest = content_hash("hello")

    assert digest == "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
    assert content_hash("hello") == digest
    assert content_hash("hello!") != digest


def test_cache_round_trip_and_invalidation() -> None:
    cache = ContentCache()
    cache.store("language", fingerprint="fp", value={"Rust": 0.9}, signature="sig-1")

    assert cache.get("language", fingerprint="fp", signature="sig-1") == {"Rust": 0.9}
    assert cache.get("language", fingerprint="fp", signature="sig-2") is None
    assert cache.get("language", fingerprint="other", signature="sig-1") is None
    assert cache.hits == 1
    assert cache.misses == 2


def test_first_writer_wins() -> None:
    cache = ContentCache()

    first = cache.store("markdown", fingerprint="fp", value="first")
    second = cache.store("markdown", fingerprint="fp", value="second")

    assert first == "first"
    assert second == "first"


def test_concurrent_writers_share_one_value() -> None:
    cache = ContentCache()

    with ThreadPoolExecutor(max_workers=8) as pool:
        stored = list(pool.map(lambda index: cache.store("ns", fingerprint="fp", value=index), range(32)))

    assert len(set(stored)) == 1
    assert len(cache) == 1


def test_oldest_entry_is_evicted_when_full() -> None:
    cache = ContentCache(max_entries=2)
    cache.store("ns", fingerprint="a", value=1)
    cache.store("ns", fingerprint="b", value=2)
    cache.store("ns", fingerprint="c", value=3)

    assert cache.get("ns", fingerprint="a") is None
    assert cache.get("ns", fingerprint="c") == 3
    assert len(cache) == 2


def test_clear_resets_entries_and_counters() -> None:
    cache = ContentCache()
    cache.store("keep", fingerprint="fp", value=1)
    assert cache.get("keep", fingerprint="fp") == 1

    cache.clear()
    assert len(cache) == 0
    assert cache.hits == 0


def test_content_hash_accepts_lone_surrogates() -> None:
    digest = content_hash("# Proj \udc80\n")

    assert len(digest) == 64
    assert digest != content_hash("# Proj \udc81\n")
