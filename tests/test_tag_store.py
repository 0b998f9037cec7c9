"""
Tests for TagStateStore, PluginIndex and the file stores behind them.
"""

import json
import threading

from pluginrepo.domain import AssetRecord, Platform, PluginPackageRecord, TagRecord, ToolRecord
from pluginrepo.infra.file_store import FileStore, TagFileStore
from pluginrepo.services.tag_store import PluginIndex, TagStateStore


def fetched(tag, assets=("widgets-plugin-windows.zip",)):
    record = TagRecord(tag_name=tag, display_name=f"Release {tag}", published_at="2024-05-01T12:00:00Z")
    for name in assets:
        record.assets.append(AssetRecord(
            name=name,
            download_url=f"https://example.com/{name}",
            local_path=f"/elsewhere/{name}",
            platform=Platform.WINDOWS,
        ))
    return record


def processed(store, tag):
    record = fetched(tag)
    record.plugin_packages["acme_widgets"] = PluginPackageRecord(
        id="acme_widgets",
        name="widgets",
        version="1.2.0",
        tag_name=tag,
        local_path=str(store.repo_root / tag / "windows" / f"widgets_{tag}_1.zip"),
        platform=Platform.WINDOWS,
        tools=[ToolRecord(name="make_widget")],
    )
    return record


class TestFileStore:

    def test_set_get_and_persist(self, tmp_path):
        path = tmp_path / "plugins.json"
        store = FileStore(path)
        store.set("a", {"x": 1})
        store.update({"b": 2})

        assert FileStore(path).read() == {"a": {"x": 1}, "b": 2}
        assert "a" in store
        assert len(store) == 2

    def test_set_does_not_deadlock(self, tmp_path):
        """set() reads under its own lock."""
        store = FileStore(tmp_path / "s.json")
        worker = threading.Thread(target=store.set, args=("k", "v"))
        worker.start()
        worker.join(timeout=5)
        assert not worker.is_alive()

    def test_malformed_file_reads_empty(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("[1, 2")
        assert FileStore(path).read() == {}

    def test_no_temp_files_left(self, tmp_path):
        store = FileStore(tmp_path / "s.json")
        store.set("k", 1)
        assert [p.name for p in tmp_path.iterdir()] == ["s.json"]


class TestTagFileStore:

    def test_write_read(self, tmp_path):
        files = TagFileStore(tmp_path)
        files.write("v1", {"tag_name": "v1"})
        assert files.read("v1") == {"tag_name": "v1"}
        assert files.path_for("v1") == tmp_path / "v1.json"

    def test_missing_and_malformed(self, tmp_path):
        files = TagFileStore(tmp_path)
        assert files.read("nope") is None
        (tmp_path / "bad.json").write_text("{")
        assert files.read("bad") is None
        (tmp_path / "list.json").write_text("[]")
        assert files.read("list") is None

    def test_tag_names_skips_plugin_index(self, tmp_path):
        files = TagFileStore(tmp_path)
        files.write("v2", {})
        files.write("v1", {})
        (tmp_path / "plugins.json").write_text("{}")
        assert files.tag_names() == ["v1", "v2"]


class TestTagStateStore:

    def test_reconcile_adopts_fetched(self, tmp_path):
        store = TagStateStore(tmp_path)
        merged = store.reconcile([fetched("v1"), fetched("v2")])

        assert sorted(merged) == ["v1", "v2"]
        assert store.tag_names() == ["v1", "v2"]
        # local_path is recomputed from the repository root
        assert merged["v1"].assets[0].local_path == str(tmp_path / "v1" / "widgets-plugin-windows.zip")

    def test_reconcile_prefers_processed_persisted(self, tmp_path):
        store = TagStateStore(tmp_path)
        store.persist(processed(store, "v1"))

        merged = store.reconcile([fetched("v1")])

        assert merged["v1"].is_processed
        assert list(merged["v1"].plugin_packages) == ["acme_widgets"]

    def test_reconcile_ignores_unprocessed_persisted(self, tmp_path):
        store = TagStateStore(tmp_path)
        old = fetched("v1", assets=("old-plugin.zip",))
        store.persist(old)

        merged = store.reconcile([fetched("v1")])

        assert [a.name for a in merged["v1"].assets] == ["widgets-plugin-windows.zip"]

    def test_reconcile_is_idempotent(self, tmp_path):
        store = TagStateStore(tmp_path)
        store.persist(processed(store, "v1"))
        listing = [fetched("v1"), fetched("v2")]

        first = store.reconcile(listing)
        second = store.reconcile(listing)

        assert {k: v.to_dict() for k, v in first.items()} == {k: v.to_dict() for k, v in second.items()}

    def test_reconcile_duplicate_first_wins(self, tmp_path):
        store = TagStateStore(tmp_path)
        merged = store.reconcile([fetched("v1", assets=("a-plugin.zip",)), fetched("v1", assets=("b-plugin.zip",))])
        assert [a.name for a in merged["v1"].assets] == ["a-plugin.zip"]

    def test_reconcile_replaces_state(self, tmp_path):
        store = TagStateStore(tmp_path)
        store.reconcile([fetched("v1")])
        store.reconcile([fetched("v2")])
        assert store.tag_names() == ["v2"]

    def test_get_returns_copy(self, tmp_path):
        store = TagStateStore(tmp_path)
        store.reconcile([fetched("v1")])

        copy = store.get("v1")
        copy.assets.clear()

        assert len(store.get("v1").assets) == 1
        assert store.get("missing") is None

    def test_commit_updates_memory_and_disk(self, tmp_path):
        store = TagStateStore(tmp_path)
        store.reconcile([fetched("v1")])

        path = store.commit(processed(store, "v1"))

        assert path == tmp_path / "v1.json"
        assert store.get("v1").is_processed
        data = json.loads(path.read_text())
        assert data["plugin_packages"]["acme_widgets"]["tag_name"] == "v1"

    def test_load_from_disk(self, tmp_path):
        TagStateStore(tmp_path).persist(processed(TagStateStore(tmp_path), "v1"))
        store = TagStateStore(tmp_path)
        assert store.load_from_disk() == 1
        assert store.tag_names() == ["v1"]


class TestPersistedDataIsUntrusted:
    """Persisted tag files are re-sanitized when read back."""

    def _write(self, tmp_path, data):
        (tmp_path / "v1.json").write_text(json.dumps(data))

    def test_paths_recomputed(self, tmp_path):
        self._write(tmp_path, {
            "tag_name": "v1",
            "assets": [{"name": "../../evil-plugin.zip", "download_url": "https://x/y",
                        "local_path": "/etc/passwd", "platform": "windows"}],
            "plugin_packages": {"../id": {"name": "w", "local_path": "/etc/shadow",
                                          "platform": "linux"}},
        })
        record = TagStateStore(tmp_path).load_persisted("v1")

        asset = record.assets[0]
        assert asset.name == ".._.._evil-plugin.zip"
        assert asset.local_path == str(tmp_path / "v1" / ".._.._evil-plugin.zip")
        package = record.plugin_packages[".._id"]
        assert package.local_path == str(tmp_path / "v1" / "linux" / "shadow")

    def test_bad_url_and_timestamp_dropped(self, tmp_path):
        self._write(tmp_path, {
            "tag_name": "v1",
            "published_at": "yesterday; rm -rf /",
            "assets": [{"name": "a-plugin.zip", "download_url": "file:///etc/passwd"}],
        })
        record = TagStateStore(tmp_path).load_persisted("v1")
        assert record.published_at == ""
        assert record.assets[0].download_url == ""

    def test_valid_timestamp_kept(self, tmp_path):
        self._write(tmp_path, {"tag_name": "v1", "published_at": "2024-05-01T12:00:00Z"})
        assert TagStateStore(tmp_path).load_persisted("v1").published_at == "2024-05-01T12:00:00Z"

    def test_malformed_file_treated_as_absent(self, tmp_path):
        (tmp_path / "v1.json").write_text("{{{")
        store = TagStateStore(tmp_path)
        assert store.load_persisted("v1") is None

        merged = store.reconcile([fetched("v1")])
        assert not merged["v1"].is_processed

    def test_file_naming_another_tag_treated_as_absent(self, tmp_path):
        store = TagStateStore(tmp_path)
        impostor = processed(store, "v2")
        (tmp_path / "v1.json").write_text(json.dumps(impostor.to_dict()))

        assert store.load_persisted("v1") is None
        merged = store.reconcile([fetched("v1")])
        assert merged["v1"].tag_name == "v1"
        assert not merged["v1"].is_processed

    def test_written_strings_sanitized(self, tmp_path):
        store = TagStateStore(tmp_path)
        record = processed(store, "v1")
        record.plugin_packages["acme_widgets"].description = "Does <things>/stuff"
        store.persist(record)

        data = json.loads((tmp_path / "v1.json").read_text())
        assert data["plugin_packages"]["acme_widgets"]["description"] == "Does _things__stuff"
        # Empty fields stay empty rather than becoming a placeholder
        assert data["plugin_packages"]["acme_widgets"]["author"] == ""


class TestPluginIndex:

    def test_record_tag_keeps_tools(self, tmp_path):
        store = TagStateStore(tmp_path)
        index = PluginIndex(tmp_path)

        index.record_tag(processed(store, "v1"))

        entry = index.all()["acme_widgets"]
        assert entry["tools"][0]["name"] == "make_widget"
        assert index.get("acme_widgets").tools[0].name == "make_widget"
        assert index.get("missing") is None

    def test_later_tag_replaces_entry(self, tmp_path):
        store = TagStateStore(tmp_path)
        index = PluginIndex(tmp_path)
        index.record_tag(processed(store, "v1"))
        index.record_tag(processed(store, "v2"))
        assert index.all()["acme_widgets"]["tag_name"] == "v2"
        assert len(index) == 1
