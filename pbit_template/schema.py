"""
Tabular data model (DataModelSchema) for the template.

Column types are sniffed from the first record of each table, with a few
columns pinned so the measures always aggregate numbers and dates. The result
serializes to the TMSL database document Power BI Desktop reads from a .pbit.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field

from pbit_template import mquery
from pbit_template.errors import SchemaBuildError
from pbit_template.mapper import columns_of
from pbit_template.values import is_integer_text, parse_calendar_date

_log = logging.getLogger("pbit_template.schema")

DEFAULT_COMPATIBILITY_LEVEL = 1550
CULTURE = "en-US"
DESKTOP_VERSION = "2.128.751.0 (24.04)"

PINNED_TYPES = {
    ("assignments", "units"): "int64",
    ("tasks", "outlineNumber"): "string",
    ("tasks", "percentComplete"): "int64",
    ("tasks", "start"): "dateTime",
    ("tasks", "finish"): "dateTime",
}
NUMERIC_TYPES = ("int64", "double")
MIN_DATE_LENGTH = 8


@dataclass
class DataModelSchema:
    id: str
    compatibility_level: int
    tables: list
    relationships: list
    cultures: list
    annotations: list
    lineage_tags: dict = field(default_factory=dict)

    def table(self, name: str) -> dict:
        for t in self.tables:
            if t["name"] == name:
                return t
        raise KeyError(name)

    def to_document(self) -> dict:
        return {
            "name": self.id,
            "compatibilityLevel": self.compatibility_level,
            "model": {
                "culture": CULTURE,
                "dataAccessOptions": {
                    "legacyRedirects": True,
                    "returnErrorValuesAsNull": True,
                },
                "defaultPowerBIDataSourceVersion": "powerBI_V3",
                "sourceQueryCulture": CULTURE,
                "tables": self.tables,
                "relationships": self.relationships,
                "cultures": self.cultures,
                "annotations": self.annotations,
            },
        }


def infer_type(value) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "int64"
    if isinstance(value, float):
        return "int64" if value.is_integer() else "double"
    if isinstance(value, str):
        if value.strip() and is_integer_text(value):
            return "int64"
        if len(value) >= MIN_DATE_LENGTH and parse_calendar_date(value) is not None:
            return "dateTime"
    return "string"


def column_type(table_name: str, column: str, sample) -> str:
    pinned = PINNED_TYPES.get((table_name, column))
    if pinned:
        return pinned
    return infer_type(sample)


def summarize_by(column: str, data_type: str) -> str:
    if data_type not in NUMERIC_TYPES:
        return "none"
    if column == "id" or column.endswith("ID") or column in ("outlineLevel", mquery.TASK_INDEX_COLUMN):
        return "none"
    return "sum"


def build_column(name: str, data_type: str, source_column: str = None) -> dict:
    col = {
        "name": name,
        "dataType": data_type,
        "sourceColumn": source_column or name,
        "summarizeBy": summarize_by(name, data_type),
        "lineageTag": str(uuid.uuid4()),
        "annotations": [{"name": "SummarizationSetBy", "value": "Automatic"}],
    }
    if data_type == "dateTime":
        col["formatString"] = "Long Date"
        col["annotations"].append({"name": "UnderlyingDateTimeDataType", "value": "Date"})
    return col


def build_measure(measure: dict) -> dict:
    out = {
        "name": measure["name"],
        "expression": measure["expression"],
        "lineageTag": str(uuid.uuid4()),
    }
    if measure.get("formatString"):
        out["formatString"] = measure["formatString"]
    if measure.get("annotations"):
        out["annotations"] = [dict(a) for a in measure["annotations"]]
    return out


def build_table(name: str, rows, lineage_tag: str, measures, task_ids=None) -> dict:
    first = rows[0]
    removed = mquery.removed_columns(name)
    types = {}
    for col in columns_of(rows):
        if col in removed:
            continue
        types[col] = column_type(name, col, first.get(col))

    columns = [build_column(col, dtype) for col, dtype in types.items()]
    for col, dtype in mquery.derived_columns(name, with_task_index=task_ids is not None):
        columns.append(build_column(col, dtype))

    expression = mquery.build_table_expression(name, rows, types, task_ids=task_ids)
    return {
        "name": name,
        "lineageTag": lineage_tag,
        "columns": columns,
        "measures": [build_measure(m) for m in measures],
        "partitions": [{
            "name": f"{name}-{lineage_tag}",
            "mode": "import",
            "source": {"type": "m", "expression": expression},
        }],
        "annotations": [{"name": "PBI_ResultType", "value": "Table"}],
    }


def build_relationships(table_names) -> list[dict]:
    rels = []
    if "assignments" in table_names and "resources" in table_names:
        rels.append({
            "name": str(uuid.uuid4()),
            "fromTable": "assignments",
            "fromColumn": "resourceID",
            "toTable": "resources",
            "toColumn": "id",
            "crossFilteringBehavior": "bothDirections",
        })
    if "assignments" in table_names and "tasks" in table_names:
        rels.append({
            "name": str(uuid.uuid4()),
            "fromTable": "assignments",
            "fromColumn": mquery.TASK_INDEX_COLUMN,
            "toTable": "tasks",
            "toColumn": mquery.TASK_INDEX_COLUMN,
            "crossFilteringBehavior": "bothDirections",
        })
    return rels


def build_schema(mapped, measures, logger=None,
                 compatibility_level: int = DEFAULT_COMPATIBILITY_LEVEL) -> DataModelSchema:
    log = logger or _log
    present = dict(mapped.non_empty())
    if not present:
        raise SchemaBuildError("No non-empty tables to model")

    lineage_tags = {name: str(uuid.uuid4()) for name in present}

    by_table = {}
    for m in measures:
        if m.get("table") not in present:
            log.warning("Dropping measure %r: table %r has no rows", m.get("name"), m.get("table"))
            continue
        by_table.setdefault(m["table"], []).append(m)

    task_ids = [t.get("id") for t in present["tasks"]] if "tasks" in present else None

    tables = []
    for name, rows in present.items():
        tables.append(build_table(
            name,
            rows,
            lineage_tags[name],
            by_table.get(name, []),
            task_ids=task_ids if name == "assignments" else None,
        ))

    relationships = build_relationships(present)
    log.info("Built data model with %d tables, %d relationships", len(tables), len(relationships))

    return DataModelSchema(
        id=str(uuid.uuid4()),
        compatibility_level=compatibility_level,
        tables=tables,
        relationships=relationships,
        cultures=[{
            "name": CULTURE,
            "linguisticMetadata": {
                "content": {"Version": "1.0.0", "Language": CULTURE},
                "contentType": "json",
            },
        }],
        annotations=[
            {"name": "PBI_QueryOrder", "value": json.dumps(list(present))},
            {"name": "__PBI_TimeIntelligenceEnabled", "value": "0"},
            {"name": "PBIDesktopVersion", "value": DESKTOP_VERSION},
        ],
        lineage_tags=lineage_tags,
    )
