from labcontent.utils.lookup_cache import LookupCache


def test_make_key_folds_case_and_whitespace():
    assert LookupCache.make_key("title:2020", "  Neural   Coding ") == "title:2020:neural coding"


def test_values_and_remembered_failures():
    cache = LookupCache()
    cache.set("doi:a", {"title": "A"})
    cache.set_error("doi:b", "not found")

    assert cache.get("doi:a") == {"title": "A"}
    assert cache.get("doi:b") is None
    assert "doi:b" in cache
    assert cache.get("doi:c") is None
    assert "doi:c" not in cache

    stats = cache.get_stats()
    assert stats["size"] == 2
    assert stats["hits"] == 1
    assert stats["misses"] == 2


def test_save_and_load(tmp_path):
    path = tmp_path / "parsed" / "crossref-cache.json"
    cache = LookupCache()
    cache.set("doi:a", {"title": "聴覚"})
    cache.set_error("doi:b", "timeout")
    cache.save(path)

    loaded = LookupCache.load(path)

    assert loaded.entries == {"doi:a": {"title": "聴覚"}, "doi:b": {"error": "timeout"}}


def test_load_missing_file(tmp_path):
    assert len(LookupCache.load(tmp_path / "missing.json")) == 0
