"""Tests for checklist_reconcile.io_utils."""

from pathlib import Path

import pytest

from checklist_reconcile.io_utils import dumps_canonical, load_json, load_json_object, save_json


class TestCanonicalJson:
    def test_sorted_keys_and_trailing_newline(self) -> None:
        out = dumps_canonical({"b": 1, "a": [1, 2]})
        assert out.endswith(b"\n")
        assert out.index(b'"a"') < out.index(b'"b"')

    def test_deterministic(self) -> None:
        obj = {"z": {"y": 1, "x": 2}, "a": None}
        assert dumps_canonical(obj) == dumps_canonical(dict(reversed(list(obj.items()))))


class TestFileRoundTrip:
    def test_save_creates_parents(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "out.json"
        save_json({"checklists": []}, path)
        assert load_json(path) == {"checklists": []}

    def test_load_json_object(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        save_json({"badges": [{"badgeName": "Cooking"}]}, path)
        assert load_json_object(path)["badges"][0]["badgeName"] == "Cooking"

    def test_load_json_object_rejects_list(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_bytes(b"[]")
        with pytest.raises(ValueError, match="Scrape payload must be a JSON object"):
            load_json_object(path, what="Scrape")

    def test_load_json_object_rejects_garbage(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_bytes(b"{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_json_object(path)
