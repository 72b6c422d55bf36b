"""
DAX measure catalog.

Ships a built-in list of project KPIs and merges an optional override file
on top of it. The override file is JSON, either a list of measures or an
object with a "measures" list, each entry shaped like the built-ins:

    {"table": "tasks", "name": "Total Work Hours", "expression": "SUM(tasks[work])"}

Entries are keyed by (table, name): matching keys replace the built-in,
new keys are appended.
"""
import copy
import json
import logging
from pathlib import Path
from typing import Optional

_log = logging.getLogger("pbit_template.measures")

REQUIRED_FIELDS = ("table", "name", "expression")

BUILTIN_MEASURES = (
    {
        "table": "tasks",
        "name": "Total Work Hours",
        "expression": "SUM(tasks[work])",
    },
    {
        "table": "tasks",
        "name": "Average Percent Complete",
        "expression": "AVERAGE(tasks[percentComplete])",
    },
    {
        "table": "assignments",
        "name": "Total Units",
        "expression": "CALCULATE(SUM(assignments[units]))",
        "formatString": "0",
    },
    {
        "table": "tasks",
        "name": "Total Duration Days",
        "expression": "SUM(tasks[duration])",
    },
    {
        "table": "tasks",
        "name": "Project Completion %",
        "expression": "DIVIDE(SUM(tasks[percentComplete]), COUNTROWS(tasks))",
    },
    {
        "table": "assignments",
        "name": "Average Resource Utilization",
        "expression": "CALCULATE(AVERAGE(assignments[units]))",
        "annotations": [
            {"name": "PBI_FormatHint", "value": "{\"isGeneralNumber\":true}"},
        ],
    },
)


def merge_measures(base, overrides, logger=None) -> list[dict]:
    log = logger or _log
    merged = [copy.deepcopy(m) for m in base]
    index = {(m["table"], m["name"]): i for i, m in enumerate(merged)}
    for position, entry in enumerate(overrides):
        if not isinstance(entry, dict):
            log.warning("Skipping measure override %d: expected an object, got %s", position, type(entry).__name__)
            continue
        missing = [field for field in REQUIRED_FIELDS if not entry.get(field)]
        if missing:
            log.warning("Skipping measure override %d: missing %s", position, ", ".join(missing))
            continue
        not_text = [field for field in ("table", "name") if not isinstance(entry[field], str)]
        if not_text:
            log.warning("Skipping measure override %d: %s must be a string", position, ", ".join(not_text))
            continue
        key = (entry["table"], entry["name"])
        if key in index:
            merged[index[key]] = copy.deepcopy(entry)
        else:
            index[key] = len(merged)
            merged.append(copy.deepcopy(entry))
    return merged


def load_measure_overrides(path: Path, logger=None) -> Optional[list]:
    """Read an override document; returns None when it cannot be used."""
    log = logger or _log
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8-sig"))
    except (OSError, ValueError) as exc:
        log.error("Could not load measure overrides from %s: %s", path, exc)
        return None
    if isinstance(raw, dict):
        raw = raw.get("measures")
    if not isinstance(raw, list):
        log.error("Measure overrides in %s must be a list of measures", path)
        return None
    return raw


def build_measure_catalog(overrides_path=None, logger=None) -> list[dict]:
    log = logger or _log
    if not overrides_path:
        return merge_measures(BUILTIN_MEASURES, [], log)
    overrides = load_measure_overrides(overrides_path, log)
    if overrides is None:
        log.warning("Falling back to %d built-in measures", len(BUILTIN_MEASURES))
        return merge_measures(BUILTIN_MEASURES, [], log)
    merged = merge_measures(BUILTIN_MEASURES, overrides, log)
    log.info("Loaded %d measure overrides from %s", len(overrides), overrides_path)
    return merged
