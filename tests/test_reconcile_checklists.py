"""Tests for scripts/reconcile_checklists.py."""
from pathlib import Path

import orjson
import pytest

from scripts.reconcile_checklists import main

IDS_DOC = {"badges": [
    {"badgeName": "Cooking", "versionYear": 2025, "requirementIds": ["1", "2a", "2b", "7"]},
]}
SCRAPE_DOC = {"badges": [
    {"badgeName": "Cooking", "versionYear": 2025, "requirements": [
        {"displayLabel": "1", "description": "Explain food safety", "hasCheckbox": True},
        {"displayLabel": "2", "description": "Do the following:", "hasCheckbox": False},
        {"displayLabel": "(a)", "description": "Plan a menu", "hasCheckbox": True},
        {"displayLabel": "(b)", "description": "Cook the menu", "hasCheckbox": True},
    ]},
]}


def _write(path: Path, obj: object) -> Path:
    path.write_bytes(orjson.dumps(obj))
    return path


class TestMain:
    def test_writes_outputs_and_summary(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        ids = _write(tmp_path / "ids.json", IDS_DOC)
        scrape = _write(tmp_path / "scrape.json", SCRAPE_DOC)
        canonical = tmp_path / "out" / "canonical.json"
        report = tmp_path / "out" / "report.json"

        rc = main([
            "--ids", str(ids), "--scrape", str(scrape),
            "--out-canonical", str(canonical), "--out-report", str(report),
        ])

        assert rc == 0
        summary = orjson.loads(capsys.readouterr().out)
        assert summary["matched"] == 3
        assert summary["unmatched"] == 1
        assert summary["by_kind"] == {"csv_not_in_ui": 1}

        canonical_doc = orjson.loads(canonical.read_bytes())
        assert "generated_at" not in canonical_doc
        [checklist] = canonical_doc["checklists"]
        assert checklist["code"] == "cooking"
        report_doc = orjson.loads(report.read_bytes())
        assert report_doc["discrepancies"][0]["identifier"] == "7"

    def test_rerun_is_byte_identical(self, tmp_path: Path) -> None:
        ids = _write(tmp_path / "ids.json", IDS_DOC)
        scrape = _write(tmp_path / "scrape.json", SCRAPE_DOC)
        outputs = []
        for run in ("a", "b"):
            canonical = tmp_path / run / "canonical.json"
            report = tmp_path / run / "report.json"
            assert main([
                "--ids", str(ids), "--scrape", str(scrape),
                "--out-canonical", str(canonical), "--out-report", str(report),
            ]) == 0
            outputs.append((canonical.read_bytes(), report.read_bytes()))
        assert outputs[0] == outputs[1]

    def test_timestamp_flag(self, tmp_path: Path) -> None:
        ids = _write(tmp_path / "ids.json", IDS_DOC)
        canonical = tmp_path / "canonical.json"
        assert main([
            "--ids", str(ids), "--out-canonical", str(canonical),
            "--out-report", str(tmp_path / "report.json"), "--timestamp",
        ]) == 0
        assert "generated_at" in orjson.loads(canonical.read_bytes())

    def test_config_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        ids = _write(tmp_path / "ids.json", IDS_DOC)
        scrape = _write(tmp_path / "scrape.json", SCRAPE_DOC)
        config = _write(tmp_path / "config.json", {"direct_label_pass": False})
        assert main([
            "--ids", str(ids), "--scrape", str(scrape), "--config", str(config),
            "--out-canonical", str(tmp_path / "c.json"), "--out-report", str(tmp_path / "r.json"),
        ]) == 0
        assert orjson.loads(capsys.readouterr().out)["matched"] == 3

    def test_missing_input_exits_1(self, tmp_path: Path) -> None:
        assert main(["--ids", str(tmp_path / "missing.json")]) == 1

    def test_non_object_input_exits_1(self, tmp_path: Path) -> None:
        ids = _write(tmp_path / "ids.json", ["1", "2"])
        assert main(["--ids", str(ids), "--out-canonical", str(tmp_path / "c.json")]) == 1
        assert not (tmp_path / "c.json").exists()
