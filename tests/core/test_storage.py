import json

import pytest

from storefront_gateway.core.storage import JsonFileStore, MemoryStore


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return JsonFileStore(tmp_path / "state.json")


class TestKeyValueStores:
    def test_missing_key_is_none(self, store):
        assert store.get("ocop_auth_token") is None

    def test_set_replaces_whole_value(self, store):
        store.set("ocop_user_profile", {"name": "A", "email": "a@example.test"})
        store.set("ocop_user_profile", {"name": "B"})

        assert store.get("ocop_user_profile") == {"name": "B"}

    def test_delete_many_removes_all_given_keys(self, store):
        store.set("ocop_auth_token", "token")
        store.set("ocop_user_profile", "{}")
        store.set("ocop_backend_banner_dismissed_at", 1700000000000)

        store.delete_many(["ocop_auth_token", "ocop_user_profile", "never-set"])

        assert store.get("ocop_auth_token") is None
        assert store.get("ocop_user_profile") is None
        assert store.get("ocop_backend_banner_dismissed_at") == 1700000000000

    def test_delete_single_key(self, store):
        store.set("ocop_auth_token", "token")
        store.delete("ocop_auth_token")
        assert store.get("ocop_auth_token") is None


class TestJsonFileStore:
    def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "state.json"
        JsonFileStore(path).set("ocop_auth_token", "persisted")

        assert JsonFileStore(path).get("ocop_auth_token") == "persisted"

    def test_writes_plain_json_document(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        JsonFileStore(path).set("ocop_backend_banner_dismissed_at", 1700000000000)

        assert json.loads(path.read_text()) == {"ocop_backend_banner_dismissed_at": 1700000000000}

    def test_leaves_no_temporary_files(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        store.set("a", 1)
        store.set("b", 2)
        store.delete_many(["a"])

        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
    def test_unreadable_file_starts_empty(self, tmp_path, content):
        path = tmp_path / "state.json"
        path.write_text(content)
        store = JsonFileStore(path)

        assert store.get("ocop_auth_token") is None
        store.set("ocop_auth_token", "fresh")
        assert json.loads(path.read_text()) == {"ocop_auth_token": "fresh"}

    def test_delete_of_absent_keys_does_not_create_file(self, tmp_path):
        path = tmp_path / "state.json"
        JsonFileStore(path).delete_many(["ocop_auth_token"])

        assert not path.exists()
