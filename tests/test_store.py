"""
Unit tests for the JSON preference store.
"""

import json

from utils.store import PreferenceStore


class TestPreferenceStore:
    def test_creates_file_and_persists(self, tmp_path):
        path = tmp_path / "nested" / "prefs.json"
        store = PreferenceStore(path)
        assert path.exists()
        store.set("ai_default_engine", "claude")

        reopened = PreferenceStore(path)
        assert reopened.get_str("ai_default_engine") == "claude"
        assert json.loads(path.read_text(encoding="utf-8")) == {"ai_default_engine": "claude"}

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{broken", encoding="utf-8")
        assert PreferenceStore(path).snapshot() == {}

    def test_typed_getters(self):
        store = PreferenceStore(
            None,
            initial={"timeout": " 5000 ", "bad": "soon", "flag": "yes", "off": "0", "real": True},
        )
        assert store.get_int("timeout", 1) == 5000
        assert store.get_int("bad", 7) == 7
        assert store.get_int("missing", 3) == 3
        assert store.get_bool("flag")
        assert not store.get_bool("off")
        assert store.get_bool("real")
        assert store.get_bool("missing", True)
        assert store.get_str("missing", "dflt") == "dflt"

    def test_remove(self, tmp_path):
        path = tmp_path / "prefs.json"
        store = PreferenceStore(path)
        store.set("a", 1)
        store.remove("a")
        store.remove("never-set")
        assert PreferenceStore(path).get("a") is None

    def test_manual_flush(self, tmp_path):
        path = tmp_path / "prefs.json"
        store = PreferenceStore(path, auto_flush=False)
        store.set("a", "1")
        assert PreferenceStore(path).get("a") is None
        store.flush()
        assert PreferenceStore(path).get("a") == "1"
