import codecs
import json
from pathlib import Path

import ijson
import pytest

from pbit_template.loader import load_project_json, load_project_json_stream

SAMPLE = Path(__file__).resolve().parent.parent / "mock" / "data" / "small_project.json"


def test_stream_matches_plain_load_for_sample_scenario():
    assert load_project_json_stream(SAMPLE) == load_project_json(SAMPLE)


def test_stream_handles_bom_and_fractions(tmp_path, sample_project):
    sample_project["tasks"][0]["duration"] = 2.5
    path = tmp_path / "bom.json"
    path.write_bytes(codecs.BOM_UTF8 + json.dumps(sample_project).encode("utf-8"))
    loaded = load_project_json_stream(path)
    assert loaded == load_project_json(path)
    assert isinstance(loaded["tasks"][0]["duration"], float)


def test_stream_fills_absent_sections(tmp_path):
    path = tmp_path / "partial.json"
    path.write_text(json.dumps({"tasks": [{"id": 1}], "extra": {"tasks": [{"id": 9}]}}), encoding="utf-8")
    assert load_project_json_stream(path) == {
        "tasks": [{"id": 1}],
        "resources": [],
        "assignments": [],
        "properties": {},
    }


def test_stream_rejects_truncated_document(tmp_path):
    path = tmp_path / "cut.json"
    path.write_text('{"tasks": [{"id": 1}', encoding="utf-8")
    with pytest.raises(ijson.JSONError):
        load_project_json_stream(path)
