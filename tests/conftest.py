import copy
import json
import zipfile

import pytest


MINIMAL_PROJECT = {
    "tasks": [{"id": 1, "name": "A", "percentComplete": 100, "predecessors": []}],
    "resources": [{"id": 10, "name": "R"}],
    "assignments": [{"taskID": 1, "resourceID": 10, "units": 100}],
    "properties": {},
}

SAMPLE_PROJECT = {
    "tasks": [
        {"id": 1, "uniqueID": 101, "name": "Design", "outlineNumber": "1", "outlineLevel": 1,
         "start": "2024-01-01", "finish": "2024-01-05", "duration": 5, "work": 40,
         "percentComplete": 100, "summary": False, "type": "Fixed Units", "constraint": None,
         "predecessors": []},
        {"id": 2, "uniqueID": 102, "name": "Build \"core\" #(1)", "outlineNumber": "1.1", "outlineLevel": 2,
         "start": "2024-01-08", "finish": "2024-01-19", "duration": 10, "work": 80,
         "percentComplete": 40, "summary": False, "type": "Fixed Units", "constraint": None,
         "predecessors": [{"taskID": 1, "taskUniqueID": 101, "taskName": "Design", "type": "FS", "lag": 0}]},
        {"id": 4, "uniqueID": 104, "name": "Test", "outlineNumber": "2", "outlineLevel": 1,
         "start": "2024-01-22", "finish": "2024-01-26", "duration": 5, "work": 20,
         "percentComplete": 0, "summary": False, "type": "Fixed Duration", "constraint": None,
         "predecessors": [
             {"taskID": 2, "taskUniqueID": 102, "taskName": "Build", "type": "FS", "lag": 0},
             {"taskID": 1, "taskUniqueID": 101, "taskName": "Design", "type": "SS", "lag": 2},
         ]},
    ],
    "resources": [
        {"id": 10, "uniqueID": 210, "name": "Dana", "type": "Work", "maxUnits": 100, "cost": 500},
        {"id": 11, "uniqueID": 211, "name": "Sam", "type": "Work", "maxUnits": 50},
    ],
    "assignments": [
        {"taskID": 1, "taskUniqueID": 101, "resourceID": 10, "resourceUniqueID": 210, "units": 100, "work": 40},
        {"taskID": 2, "taskUniqueID": 102, "resourceID": 10, "resourceUniqueID": 210, "units": 50},
        {"taskID": 2, "taskUniqueID": 102, "resourceID": 11, "resourceUniqueID": 211, "units": 50},
    ],
    "properties": {"name": "Pilot", "author": "PMO"},
}


@pytest.fixture()
def minimal_project():
    return copy.deepcopy(MINIMAL_PROJECT)


@pytest.fixture()
def sample_project():
    return copy.deepcopy(SAMPLE_PROJECT)


def read_utf16_json(zf: zipfile.ZipFile, name: str):
    return json.loads(zf.read(name).decode("utf-16-le"))
