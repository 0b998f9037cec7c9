"""
Tests for the repackaging service.
"""

import json
import zipfile

import pytest

from pluginrepo.domain import Platform
from pluginrepo.services.repackage_service import Repackager, parse_manifest

from conftest import WIDGETS_MANIFEST

TIMESTAMP = 1714564800


@pytest.fixture
def scratch(tmp_path):
    path = tmp_path / "repo" / "v1.2.0" / "temp_extract_0"
    path.mkdir(parents=True)
    return path


def make_repackager(tmp_path, **kwargs):
    kwargs.setdefault('owner', 'acme')
    return Repackager(tmp_path / "repo", clock=lambda: TIMESTAMP, **kwargs)


class TestParseManifest:

    def test_object_form(self, tmp_path):
        path = tmp_path / "widgets_tools.json"
        path.write_text(json.dumps(WIDGETS_MANIFEST))

        meta, tools = parse_manifest(path)

        assert meta == {"name": "widgets", "version": "1.2.0",
                        "description": "Widget tools", "author": "acme"}
        assert [t.name for t in tools] == ["make_widget", "stream_widgets"]
        assert tools[1].is_streaming
        assert json.loads(tools[0].parameters)["type"] == "object"

    def test_list_form(self, tmp_path):
        path = tmp_path / "widgets_tools.json"
        path.write_text(json.dumps([{"name": "a"}, {"description": "nameless"}, "junk"]))

        meta, tools = parse_manifest(path)

        assert meta == {}
        assert [t.name for t in tools] == ["a"]

    def test_unreadable(self, tmp_path):
        path = tmp_path / "widgets_tools.json"
        path.write_text("{broken")
        assert parse_manifest(path) == ({}, [])


class TestRepackager:

    def test_builds_windows_package(self, tmp_path, scratch):
        (scratch / "widgets.dll").write_bytes(b"MZ")
        (scratch / "widgets_tools.json").write_text(json.dumps(WIDGETS_MANIFEST))

        result = make_repackager(tmp_path).repackage(scratch, "v1.2.0", "2024-05-01T12:00:00Z")

        assert result.success
        package = result.packages[0]
        expected = tmp_path / "repo" / "v1.2.0" / "windows" / f"widgets_v1.2.0_{TIMESTAMP}.zip"
        assert package.local_path == str(expected)
        assert package.id == "acme_widgets"
        assert package.platform is Platform.WINDOWS
        assert package.version == "1.2.0"
        assert package.tag_name == "v1.2.0"
        assert package.release_date == "2024-05-01T12:00:00Z"
        assert len(package.tools) == 2
        with zipfile.ZipFile(expected) as zf:
            assert sorted(zf.namelist()) == ["widgets.dll", "widgets_tools.json"]

    def test_linux_package(self, tmp_path, scratch):
        (scratch / "gadgets.so").write_bytes(b"\x7fELF")
        (scratch / "gadgets_tools.json").write_text("[]")

        result = make_repackager(tmp_path).repackage(scratch, "v1.2.0")

        package = result.packages[0]
        assert package.platform is Platform.LINUX
        assert "/linux/" in package.local_path.replace("\\", "/")
        # Manifest without metadata falls back to the binary name and owner
        assert package.name == "gadgets"
        assert package.author == "acme"

    def test_missing_manifest_skipped(self, tmp_path, scratch):
        (scratch / "widgets.dll").write_bytes(b"MZ")
        (scratch / "gadgets.so").write_bytes(b"\x7fELF")
        (scratch / "gadgets_tools.json").write_text("[]")

        result = make_repackager(tmp_path).repackage(scratch, "v1.2.0")

        assert [p.name for p in result.packages] == ["gadgets"]
        assert result.skipped == ["widgets.dll"]
        assert not (tmp_path / "repo" / "v1.2.0" / "windows").exists()

    def test_ignores_other_files(self, tmp_path, scratch):
        (scratch / "README.md").write_text("hi")
        (scratch / "subdir").mkdir()

        result = make_repackager(tmp_path).repackage(scratch, "v1.2.0")

        assert not result.success
        assert result.skipped == []

    def test_output_dir_too_long(self, tmp_path, scratch):
        (scratch / "widgets.dll").write_bytes(b"MZ")
        (scratch / "widgets_tools.json").write_text("[]")

        result = make_repackager(tmp_path, max_dir_length=10).repackage(scratch, "v1.2.0")

        assert not result.success
        assert result.skipped == ["widgets.dll"]

    def test_package_path_too_long(self, tmp_path, scratch):
        (scratch / "widgets.dll").write_bytes(b"MZ")
        (scratch / "widgets_tools.json").write_text("[]")
        limit = len(str(tmp_path / "repo" / "v1.2.0" / "windows")) + 5

        result = make_repackager(tmp_path, max_path_length=limit).repackage(scratch, "v1.2.0")

        assert not result.success

    def test_without_owner_id_is_plugin_name(self, tmp_path, scratch):
        (scratch / "widgets.dll").write_bytes(b"MZ")
        (scratch / "widgets_tools.json").write_text("[]")

        result = make_repackager(tmp_path, owner="").repackage(scratch, "v1.2.0")

        assert result.packages[0].id == "widgets"
