import json
from pathlib import Path

import ijson

ARRAY_KEYS = ("tasks", "resources", "assignments")
UTF8_BOM = b"\xef\xbb\xbf"


def load_project_json(path) -> dict:
    with Path(path).open("r", encoding="utf-8-sig") as f:
        return json.load(f)


def _open_past_bom(path):
    f = Path(path).open("rb")
    if f.read(len(UTF8_BOM)) != UTF8_BOM:
        f.seek(0)
    return f


def load_project_json_stream(path) -> dict:
    """Incrementally decode a large project export.

    Each top-level array is read item by item in its own pass over the file,
    so the raw document is never held in memory as one string. Arrays that
    are absent come back empty; properties come back as {} when absent.
    """
    project = {key: [] for key in ARRAY_KEYS}
    project["properties"] = {}
    for key in ARRAY_KEYS:
        with _open_past_bom(path) as f:
            project[key].extend(ijson.items(f, f"{key}.item", use_float=True))
    with _open_past_bom(path) as f:
        for value in ijson.items(f, "properties", use_float=True):
            if isinstance(value, dict):
                project["properties"].update(value)
    return project


def list_scenarios(scenarios_dir) -> list[str]:
    """Scenario names (file stems) of the *.json documents in scenarios_dir."""
    root = Path(scenarios_dir)
    if not root.is_dir():
        return []
    return sorted(p.stem for p in root.glob("*.json"))


def load_scenario(scenarios_dir, name: str) -> dict:
    path = Path(scenarios_dir) / f"{name}.json"
    if not path.is_file():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    return load_project_json(path)
