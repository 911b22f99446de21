from planning_engine.storage import JsonFileStore, MemoryStore, load_record, save_record


class BrokenStore:
    def get(self, key):
        raise OSError("disk on fire")

    def set(self, key, value):
        raise OSError("disk on fire")


def test_json_file_store_round_trip(tmp_path):
    store = JsonFileStore(tmp_path / "state")
    assert load_record(store, "weights") is None
    assert save_record(store, "weights", {"base": {"urgency": 0.3}}) is True
    assert (tmp_path / "state" / "weights.json").exists()
    assert load_record(store, "weights") == {"base": {"urgency": 0.3}}


def test_corrupt_or_non_object_records_load_as_none():
    store = MemoryStore()
    store.set("a", "{broken")
    store.set("b", '"just a string"')
    assert load_record(store, "a") is None
    assert load_record(store, "b") is None


def test_failures_are_reported_not_raised():
    assert save_record(BrokenStore(), "k", {"x": 1}) is False
    assert load_record(BrokenStore(), "k") is None
    assert save_record(None, "k", {"x": 1}) is False
    assert save_record(MemoryStore(), "k", {"x": object()}) is False
