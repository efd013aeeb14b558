"""Tests for the LRU transclusion cache."""

import threading

import pytest

from orgtransclude.core.cache import TransclusionCache
from orgtransclude.core.model import OrgDocument, OrgLink, TransclusionDirective

CONTENT = OrgDocument()


def directive(body: str, **kwargs) -> TransclusionDirective:
    return TransclusionDirective(link=OrgLink("id:", body), **kwargs)


def test_put_and_get():
    """Test storing and retrieving an entry."""
    cache = TransclusionCache()
    d = directive("uuid1")
    cache.put(d, CONTENT, "id:uuid1", "ref", "*Heading")

    entry = cache.get(d)
    assert entry is not None
    assert entry.content is CONTENT
    assert entry.source_id == "id:uuid1"
    assert entry.source_ref == "ref"
    assert entry.target_section == "*Heading"
    assert entry.loaded_at.tzinfo is not None
    assert cache.get(directive("other")) is None


def test_evicts_least_recently_used():
    """Test that the size bound holds and the oldest entries go first."""
    cache = TransclusionCache(max_size=3)
    directives = [directive(f"uuid{i}") for i in range(5)]
    for i, d in enumerate(directives):
        cache.put(d, CONTENT, f"id:uuid{i}", None)

    assert len(cache) == 3
    assert cache.get(directives[0]) is None
    assert cache.get(directives[1]) is None
    for d in directives[2:]:
        assert cache.get(d) is not None


def test_get_refreshes_recency():
    """Test that a hit protects an entry from the next eviction."""
    cache = TransclusionCache(max_size=3)
    d1, d2, d3, d4 = (directive(f"u{i}") for i in range(1, 5))
    for d in (d1, d2, d3):
        cache.put(d, CONTENT, d.link.body, None)

    cache.get(d1)
    cache.put(d4, CONTENT, "u4", None)

    assert cache.keys() == [d3.cache_key, d1.cache_key, d4.cache_key]
    assert cache.get(d1) is not None
    assert cache.get(d2) is None


def test_put_existing_key_does_not_evict():
    """Test that replacing an entry keeps the others."""
    cache = TransclusionCache(max_size=2)
    d1, d2 = directive("a"), directive("b")
    cache.put(d1, CONTENT, "a", None)
    cache.put(d2, CONTENT, "b", None)
    cache.put(d1, CONTENT, "a", "new")

    assert len(cache) == 2
    assert cache.get(d1).source_ref == "new"
    assert cache.get(d2) is not None


def test_invalidate_only_matching_source():
    """Test that invalidation removes exactly the entries of one source."""
    cache = TransclusionCache()
    a1 = directive("a", no_first_heading=True)
    a2 = directive("a", only_contents=True)
    b = directive("b")
    cache.put(a1, CONTENT, "id:a", None)
    cache.put(a2, CONTENT, "id:a", None)
    cache.put(b, CONTENT, "id:b", None)

    assert cache.invalidate("id:a") == 2
    assert cache.get(a1) is None
    assert cache.get(a2) is None
    assert cache.get(b) is not None
    assert cache.invalidate("id:missing") == 0


def test_same_source_different_flags_are_separate_entries():
    """Test that the flags are part of the cache identity."""
    cache = TransclusionCache()
    plain = directive("a")
    nfh = directive("a", no_first_heading=True)
    cache.put(plain, CONTENT, "id:a", "plain")

    assert cache.get(nfh) is None
    cache.put(nfh, CONTENT, "id:a", "nfh")
    assert cache.get(plain).source_ref == "plain"
    assert cache.get(nfh).source_ref == "nfh"


def test_clear_and_length():
    """Test clearing the cache."""
    cache = TransclusionCache()
    cache.put(directive("a"), CONTENT, "a", None)
    cache.put(directive("b"), CONTENT, "b", None)
    assert cache.length == 2

    cache.clear()
    assert cache.length == 0
    assert len(cache) == 0
    assert cache.get(directive("a")) is None


def test_source_ids_for():
    """Test mapping a source reference id back to cached source ids."""

    class Ref:
        def __init__(self, id):
            self.id = id

    cache = TransclusionCache()
    cache.put(directive("a"), CONTENT, "id:a", Ref("/notes/a.org"))
    cache.put(directive("b"), CONTENT, "./a.org", Ref("/notes/a.org"))
    cache.put(directive("c"), CONTENT, "id:c", Ref("/notes/c.org"))

    assert cache.source_ids_for("/notes/a.org") == {"id:a", "./a.org"}
    assert cache.source_ids_for("/notes/zzz.org") == set()


def test_invalid_max_size():
    """Test that a cache must hold at least one entry."""
    with pytest.raises(ValueError):
        TransclusionCache(max_size=0)


def test_concurrent_puts_respect_bound():
    """Test that concurrent writers never push the cache past its bound."""
    cache = TransclusionCache(max_size=10)

    def writer(n: int) -> None:
        for i in range(200):
            d = directive(f"w{n}-{i}")
            cache.put(d, CONTENT, d.link.body, None)
            cache.get(d)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) == 10
    assert len(set(cache.keys())) == 10
