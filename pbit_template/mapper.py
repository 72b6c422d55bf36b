"""
Project data -> flat tables.

Normalizes the project JSON produced by the upstream extractor into the four
record sets embedded in the template: tasks, resources, assignments and
properties. Derived fields (status, resource name rollups, parent linkage)
are computed here so the data model can stay a straight import.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterator, Tuple

from pbit_template.errors import MissingCoreDataError
from pbit_template.values import to_number

TABLE_ORDER = ("tasks", "resources", "assignments", "properties")
CORE_KEYS = ("tasks", "resources", "assignments")

UNKNOWN_TASK = "Unknown Task"
UNKNOWN_RESOURCE = "Unknown Resource"


@dataclass(frozen=True)
class MappedTables:
    tasks: tuple = ()
    resources: tuple = ()
    assignments: tuple = ()
    properties: tuple = ()

    def items(self) -> Iterator[Tuple[str, tuple]]:
        for name in TABLE_ORDER:
            yield name, getattr(self, name)

    def non_empty(self) -> Iterator[Tuple[str, tuple]]:
        for name, rows in self.items():
            if rows:
                yield name, rows


def columns_of(rows) -> list[str]:
    return list(rows[0].keys()) if rows else []


def task_status(percent_complete) -> str:
    pct = to_number(percent_complete)
    if pct is None:
        return "Not Started"
    if pct == 100:
        return "Completed"
    if 0 < pct < 100:
        return "In Progress"
    return "Not Started"


def map_tasks(tasks, resource_map, assignments_by_task) -> tuple:
    out = []
    for t in tasks:
        predecessors = [dict(rel) for rel in (t.get("predecessors") or [])]
        # First predecessor stands in for the parent; this is sequencing, not outline hierarchy.
        parent_unique_id = predecessors[0].get("taskUniqueID") if predecessors else None

        names = []
        for a in assignments_by_task.get(t.get("id"), []):
            resource = resource_map.get(a.get("resourceID"))
            if resource is not None and resource.get("name"):
                names.append(resource["name"])

        out.append({
            "id": t.get("id"),
            "uniqueID": t.get("uniqueID"),
            "name": t.get("name"),
            "outlineNumber": t.get("outlineNumber"),
            "outlineLevel": t.get("outlineLevel"),
            "start": t.get("start"),
            "finish": t.get("finish"),
            "duration": t.get("duration"),
            "work": t.get("work"),
            "percentComplete": t.get("percentComplete"),
            "summary": t.get("summary"),
            "type": t.get("type"),
            "constraint": t.get("constraint"),
            "predecessors": predecessors,
            "parentUniqueID": parent_unique_id,
            "status": task_status(t.get("percentComplete")),
            "resourceNames": ", ".join(names),
        })
    return tuple(out)


def map_resources(resources) -> tuple:
    return tuple(
        {
            "id": r.get("id"),
            "uniqueID": r.get("uniqueID"),
            "name": r.get("name"),
            "type": r.get("type"),
            "maxUnits": r.get("maxUnits"),
            "cost": r.get("cost") or 0,
            "standardRate": r.get("standardRate") or 0,
            "overtimeRate": r.get("overtimeRate") or 0,
        }
        for r in resources
    )


def map_assignments(assignments, task_map, resource_map) -> tuple:
    out = []
    for a in assignments:
        task = task_map.get(a.get("taskID"))
        resource = resource_map.get(a.get("resourceID"))
        out.append({
            "taskID": a.get("taskID"),
            "taskUniqueID": task.get("uniqueID") if task is not None else a.get("taskUniqueID"),
            "resourceID": a.get("resourceID"),
            "resourceUniqueID": resource.get("uniqueID") if resource is not None else a.get("resourceUniqueID"),
            "units": a.get("units"),
            "taskName": task.get("name") if task is not None else UNKNOWN_TASK,
            "resourceName": resource.get("name") if resource is not None else UNKNOWN_RESOURCE,
            "work": a.get("work") or 0,
        })
    return tuple(out)


def map_properties(properties) -> tuple:
    if not isinstance(properties, dict):
        return ()
    return tuple({"key": key, "value": value} for key, value in properties.items())


def map_project_data(project_data) -> MappedTables:
    if not isinstance(project_data, dict):
        raise MissingCoreDataError("No project data provided")
    missing = [key for key in CORE_KEYS if project_data.get(key) is None]
    if missing:
        raise MissingCoreDataError(f"Project data is missing {', '.join(missing)}")

    tasks = project_data["tasks"]
    resources = project_data["resources"]
    assignments = project_data["assignments"]

    task_map = {t.get("id"): t for t in tasks}
    resource_map = {r.get("id"): r for r in resources}
    assignments_by_task = defaultdict(list)
    for a in assignments:
        assignments_by_task[a.get("taskID")].append(a)

    return MappedTables(
        tasks=map_tasks(tasks, resource_map, assignments_by_task),
        resources=map_resources(resources),
        assignments=map_assignments(assignments, task_map, resource_map),
        properties=map_properties(project_data.get("properties")),
    )
