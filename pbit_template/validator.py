"""Referential and format checks on mapped tables before packaging starts."""
from collections import Counter

from pbit_template.errors import DataValidationError
from pbit_template.values import parse_calendar_date


def _check_dates(task, errors):
    for field in ("start", "finish"):
        value = task.get(field)
        if value is None or value == "":
            continue
        if parse_calendar_date(value) is None:
            errors.append(f"Task {task.get('id')}: Invalid '{field}' date format: {value}")


def validate_mapped_data(mapped, require_resources: bool = True) -> None:
    if not mapped.tasks:
        raise DataValidationError(["No tasks found in project data"])

    errors = []
    if require_resources and not mapped.resources:
        errors.append("No resources found in project data")

    task_ids = set()
    seen_tasks = Counter()
    for index, task in enumerate(mapped.tasks):
        task_id = task.get("id")
        if task_id is None:
            errors.append(f"Task at index {index} is missing an ID")
            continue
        seen_tasks[task_id] += 1
        if seen_tasks[task_id] > 1:
            errors.append(f"Duplicate Task ID found: {task_id}")
        task_ids.add(task_id)

    resource_ids = set()
    seen_resources = Counter()
    for index, resource in enumerate(mapped.resources):
        resource_id = resource.get("id")
        if resource_id is None:
            errors.append(f"Resource at index {index} is missing an ID")
            continue
        seen_resources[resource_id] += 1
        if seen_resources[resource_id] > 1:
            errors.append(f"Duplicate Resource ID found: {resource_id}")
        resource_ids.add(resource_id)

    for task in mapped.tasks:
        _check_dates(task, errors)
        for rel in task.get("predecessors") or []:
            pred_id = rel.get("taskID")
            if pred_id not in task_ids:
                errors.append(
                    f"Task {task.get('id')} predecessor: References non-existent Task ID {pred_id}"
                )

    for index, assignment in enumerate(mapped.assignments):
        if assignment.get("taskID") not in task_ids:
            errors.append(f"Assignment {index}: References non-existent Task ID {assignment.get('taskID')}")
        if assignment.get("resourceID") not in resource_ids:
            errors.append(
                f"Assignment {index}: References non-existent Resource ID {assignment.get('resourceID')}"
            )

    if errors:
        raise DataValidationError(errors)
