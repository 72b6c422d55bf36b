"""
Power Query (M) partition expressions.

Every table carries its own rows as a JSON text literal so the template opens
without any external data source:

    let
        Source = Json.Document("[{""id"":1,...}]"),
        Records = Table.FromRecords(Source, {"id", ...}, MissingField.UseNull),
        Typed = Table.TransformColumnTypes(Records, {{"id", Int64.Type}, ...})
    in
        Typed

The tasks table additionally flattens its predecessor list into text columns
and gets a zero-based TaskIndex; assignments look up the same index by the
position of their taskID in the embedded task id list.
"""
import json
import re
from typing import Optional

M_TYPES = {
    "string": "type text",
    "int64": "Int64.Type",
    "double": "type number",
    "dateTime": "type datetime",
    "boolean": "type logical",
}

TASK_INDEX_COLUMN = "TaskIndex"
NESTED_COLUMNS = {"tasks": "predecessors"}
PREDECESSOR_COLUMNS = (
    ("predecessorTaskIDs", "taskID"),
    ("predecessorTaskUniqueIDs", "taskUniqueID"),
    ("predecessorTypes", "type"),
)

_LITERAL_RE = re.compile(r'Source = Json\.Document\("((?:[^"]|"")*)"\)')


def escape_m_text(text: str) -> str:
    # "#(" opens an escape sequence inside M text literals
    return text.replace("#(", "#(#)(").replace('"', '""')


def unescape_m_text(text: str) -> str:
    return text.replace('""', '"').replace("#(#)(", "#(")


def m_text(text: str) -> str:
    return '"' + escape_m_text(text) + '"'


def json_literal(value) -> str:
    return m_text(json.dumps(value, ensure_ascii=False, separators=(",", ":")))


def m_list(names) -> str:
    return "{" + ", ".join(m_text(n) for n in names) + "}"


def derived_columns(table_name: str, with_task_index: bool = False) -> list[tuple]:
    """Columns the expression adds on top of the embedded record fields."""
    if table_name == "tasks":
        return [(name, "string") for name, _ in PREDECESSOR_COLUMNS] + [(TASK_INDEX_COLUMN, "int64")]
    if table_name == "assignments" and with_task_index:
        return [(TASK_INDEX_COLUMN, "int64")]
    return []


def removed_columns(table_name: str) -> set:
    nested = NESTED_COLUMNS.get(table_name)
    return {nested} if nested else set()


def build_table_expression(table_name: str, rows, column_types: dict,
                           task_ids: Optional[list] = None) -> list[str]:
    columns = list(rows[0].keys()) if rows else list(column_types.keys())
    nested = NESTED_COLUMNS.get(table_name)

    type_pairs = []
    for col in columns:
        if col == nested or col not in column_types:
            continue
        type_pairs.append("{" + m_text(col) + ", " + M_TYPES.get(column_types[col], "type text") + "}")

    steps = [
        ("Source", f"Json.Document({json_literal([dict(r) for r in rows])})"),
        ("Records", f"Table.FromRecords(Source, {m_list(columns)}, MissingField.UseNull)"),
    ]
    if type_pairs:
        steps.append(("Typed", f"Table.TransformColumnTypes(Records, {{{', '.join(type_pairs)}}})"))

    if nested and nested in columns:
        for out_col, field in PREDECESSOR_COLUMNS:
            prev = steps[-1][0]
            steps.append((
                "Added" + out_col[0].upper() + out_col[1:],
                f"Table.AddColumn({prev}, {m_text(out_col)}, each if [{nested}] = null then \"\" "
                f"else Text.Combine(List.Transform([{nested}], each Text.From([{field}]?)), \",\"), type text)",
            ))
        steps.append(("RemovedNested", f"Table.RemoveColumns({steps[-1][0]}, {{{m_text(nested)}}})"))

    if table_name == "tasks":
        steps.append((
            "Indexed",
            f"Table.AddIndexColumn({steps[-1][0]}, {m_text(TASK_INDEX_COLUMN)}, 0, 1, Int64.Type)",
        ))
    elif table_name == "assignments" and task_ids is not None:
        prev = steps[-1][0]
        steps.append(("TaskIds", f"Json.Document({json_literal(list(task_ids))})"))
        steps.append((
            "Indexed",
            f"Table.AddColumn({prev}, {m_text(TASK_INDEX_COLUMN)}, "
            f"each List.PositionOf(TaskIds, [taskID]), Int64.Type)",
        ))

    lines = ["let"]
    for idx, (step, expr) in enumerate(steps):
        suffix = "," if idx < len(steps) - 1 else ""
        lines.append(f"    {step} = {expr}{suffix}")
    lines.append("in")
    lines.append(f"    {steps[-1][0]}")
    return lines


def embedded_rows(expression) -> list[dict]:
    """Recover the embedded row set from a partition expression."""
    text = "\n".join(expression) if isinstance(expression, (list, tuple)) else expression
    match = _LITERAL_RE.search(text)
    if match is None:
        raise ValueError("Expression has no embedded Json.Document source")
    return json.loads(unescape_m_text(match.group(1)))
