from linkdash.adapters.fallback_cache import InMemoryFallbackCache, JsonFileFallbackCache


def test_in_memory_set_get_clear():
    cache = InMemoryFallbackCache()
    assert cache.get("k") is None
    cache.set("k", "v")
    assert cache.get("k") == "v"
    cache.clear()
    assert cache.get("k") is None


def test_json_file_persists_between_instances(tmp_path):
    path = tmp_path / "cache" / "fallback.json"
    JsonFileFallbackCache(path).set("linkdash.global.v2", "[]")
    JsonFileFallbackCache(path).set("linkdash.personal.v2", '[{"id": "a"}]')

    cache = JsonFileFallbackCache(path)
    assert cache.get("linkdash.global.v2") == "[]"
    assert cache.get("linkdash.personal.v2") == '[{"id": "a"}]'


def test_json_file_missing_is_empty(tmp_path):
    assert JsonFileFallbackCache(tmp_path / "none.json").get("k") is None


def test_json_file_corrupt_is_empty(tmp_path):
    path = tmp_path / "fallback.json"
    path.write_text("{broken")
    cache = JsonFileFallbackCache(path)

    assert cache.get("k") is None
    cache.set("k", "v")
    assert cache.get("k") == "v"


def test_json_file_ignores_non_string_values(tmp_path):
    path = tmp_path / "fallback.json"
    path.write_text('{"a": 1, "b": "ok"}')
    cache = JsonFileFallbackCache(path)
    assert cache.get("a") is None
    assert cache.get("b") == "ok"
