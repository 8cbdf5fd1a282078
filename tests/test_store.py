from reprice.client.models import CacheEntry, PhoneListing
from reprice.client.store import JsonFileStore, KeyValueStore, MemoryStore, read_entry, write_entry


class TestMemoryStore:
    def test_set_get_delete(self):
        store = MemoryStore()
        store.set("a", "1")
        assert store.get("a") == "1"
        store.delete("a")
        store.delete("a")
        assert store.get("a") is None

    def test_satisfies_protocol(self):
        assert isinstance(MemoryStore(), KeyValueStore)
        assert isinstance(JsonFileStore("unused.json"), KeyValueStore)


class TestJsonFileStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "state" / "client.json"
        JsonFileStore(path).set("reprice.auth.token", "abc")

        assert JsonFileStore(path).get("reprice.auth.token") == "abc"
        assert not (tmp_path / "state" / "client.json.tmp").exists()

    def test_delete_persists(self, tmp_path):
        path = tmp_path / "client.json"
        store = JsonFileStore(path)
        store.set("k", "v")
        store.delete("k")
        assert JsonFileStore(path).get("k") is None

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "client.json"
        path.write_text("{broken")
        store = JsonFileStore(path)

        assert store.get("anything") is None
        store.set("k", "v")
        assert JsonFileStore(path).get("k") == "v"

    def test_non_string_values_dropped(self, tmp_path):
        path = tmp_path / "client.json"
        path.write_text('{"ok": "yes", "bad": 3}')
        store = JsonFileStore(path)
        assert store.get("ok") == "yes"
        assert store.get("bad") is None


class TestEntries:
    def test_write_then_read(self):
        store = MemoryStore()
        entry = CacheEntry[list[PhoneListing]](ts=1.0, data=[PhoneListing(brand="Apple", model="iPhone 13")])
        write_entry(store, "k", entry)

        loaded = read_entry(store, "k", CacheEntry[list[PhoneListing]])

        assert loaded == entry

    def test_malformed_and_missing(self):
        store = MemoryStore({"bad": '{"ts": "yesterday"}'})
        assert read_entry(store, "bad", CacheEntry[list[PhoneListing]]) is None
        assert read_entry(store, "missing", CacheEntry[list[PhoneListing]]) is None

    def test_freshness(self):
        entry = CacheEntry[int](ts=100.0, data=1)
        assert entry.is_fresh(60.0, now=159.0)
        assert not entry.is_fresh(60.0, now=160.0)
