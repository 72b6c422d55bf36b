"""
Report, diagram, settings and metadata documents for the template.

These are plain dict builders; encoding and packaging happen in parts.py.
"""
import json

REPORT_SETTINGS = {
    "useStylableVisualContainerHeader": True,
    "exportDataMode": 1,
    "defaultDrillFilterOtherVisuals": True,
    "allowChangeFilterTypes": True,
    "useEnhancedTooltips": True,
    "useDefaultAggregateDisplayName": True,
}
LAYOUT_VERSION = "5.53"
SHARED_RESOURCES = "SharedResources"
BASE_THEME_ITEM_TYPE = 202
CUSTOM_VISUAL_ITEM_TYPES = {"package.json": 5}

NODE_WIDTH = 234
NODE_HEIGHT = 300
CARD_WIDTH = 200
CARD_HEIGHT = 80
CARD_GAP = 10


def dumps(payload) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def build_diagram_layout(table_names, lineage_tags, spacing: int = 300) -> dict:
    nodes = []
    for idx, name in enumerate(table_names):
        nodes.append({
            "location": {"x": idx * spacing, "y": 0},
            "nodeIndex": name,
            "nodeLineageTag": lineage_tags[name],
            "size": {"height": NODE_HEIGHT, "width": NODE_WIDTH},
            "zIndex": idx,
        })
    return {
        "version": "1.1.0",
        "diagrams": [{
            "ordinal": 0,
            "scrollPosition": {"x": 0, "y": 0},
            "nodes": nodes,
            "name": "All tables",
            "zoomValue": 100,
            "pinKeyFieldsToTop": False,
            "showExtraHeaderInfo": False,
            "hideKeyFieldsWhenCollapsed": False,
            "tablesLocked": False,
        }],
        "selectedDiagram": "All tables",
        "defaultDiagram": "All tables",
    }


def kpi_card(measure: dict, x: int, y: int, z: int) -> dict:
    table = measure["table"]
    name = measure["name"]
    query_ref = f"{table}.{name}"
    visual_id = "card_" + "".join(ch if ch.isalnum() else "_" for ch in query_ref.lower())
    config = {
        "name": visual_id,
        "layouts": [{"id": 0, "position": {"x": x, "y": y, "z": z, "width": CARD_WIDTH, "height": CARD_HEIGHT}}],
        "singleVisual": {
            "visualType": "card",
            "projections": {"Values": [{"queryRef": query_ref}]},
            "prototypeQuery": {
                "Version": 2,
                "From": [{"Name": "t", "Entity": table, "Type": 0}],
                "Select": [{
                    "Measure": {"Expression": {"SourceRef": {"Source": "t"}}, "Property": name},
                    "Name": query_ref,
                }],
            },
            "drillFilterOtherVisuals": True,
        },
    }
    return {
        "x": x,
        "y": y,
        "z": z,
        "width": CARD_WIDTH,
        "height": CARD_HEIGHT,
        "config": dumps(config),
        "filters": "[]",
    }


def build_kpi_cards(measures, page_width: int) -> list[dict]:
    cards = []
    x, y = 20, 45
    for z, measure in enumerate(measures):
        if x + CARD_WIDTH > page_width:
            x, y = 20, y + CARD_HEIGHT + CARD_GAP
        cards.append(kpi_card(measure, x, y, z))
        x += CARD_WIDTH + CARD_GAP
    return cards


def theme_name_of(theme_file: str) -> str:
    return theme_file.rsplit(".", 1)[0]


def build_resource_packages(theme_file, custom_visuals) -> list[dict]:
    packages = []
    if theme_file:
        packages.append({"resourcePackage": {
            "name": SHARED_RESOURCES,
            "type": 2,
            "items": [{
                "type": BASE_THEME_ITEM_TYPE,
                "path": f"BaseThemes/{theme_file}",
                "name": theme_name_of(theme_file),
            }],
            "disabled": False,
        }})
    for visual_id, files in custom_visuals.items():
        packages.append({"resourcePackage": {
            "name": visual_id,
            "type": 0,
            "items": [
                {"type": CUSTOM_VISUAL_ITEM_TYPES.get(rel, 0), "path": rel, "name": rel.rsplit("/", 1)[-1]}
                for rel in files
            ],
            "disabled": False,
        }})
    return packages


def build_report_layout(visual_containers, filters=(), theme_file=None, custom_visuals=None,
                        page_name: str = "Project Overview", width: int = 1280, height: int = 720) -> dict:
    """Single-page report; custom_visuals maps registered id -> list of relative file paths."""
    custom_visuals = custom_visuals or {}
    config = {
        "version": LAYOUT_VERSION,
        "activeSectionIndex": 0,
        "defaultDrillFilterOtherVisuals": True,
        "linguisticSchemaSyncVersion": 0,
        "settings": REPORT_SETTINGS,
        "objects": {
            "section": [{"properties": {"verticalAlignment": {"expr": {"Literal": {"Value": "'Top'"}}}}}],
        },
    }
    if theme_file:
        config["themeCollection"] = {
            "baseTheme": {"name": theme_name_of(theme_file), "version": LAYOUT_VERSION, "type": 2},
        }
    if custom_visuals:
        config["publicCustomVisuals"] = list(custom_visuals)

    section = {
        "id": 0,
        "name": "ReportSection",
        "displayName": page_name,
        "filters": dumps(list(filters)),
        "ordinal": 0,
        "visualContainers": list(visual_containers),
        "config": "{}",
        "displayOption": 1,
        "width": width,
        "height": height,
    }
    return {
        "id": 0,
        "resourcePackages": build_resource_packages(theme_file, custom_visuals),
        "sections": [section],
        "config": dumps(config),
        "layoutOptimization": 0,
        "filters": "[]",
    }


def build_settings() -> dict:
    return {
        "Version": 4,
        "ReportSettings": {},
        "QueriesSettings": {
            "TypeDetectionEnabled": True,
            "RelationshipImportEnabled": True,
            "RunBackgroundAnalysis": True,
            "Version": "2.128.751.0",
        },
    }


def build_metadata(created_by: str, created_from: str, release: str) -> dict:
    return {
        "Version": 5,
        "AutoCreatedRelationships": [],
        "FileDescription": "",
        "CreatedFrom": created_from,
        "CreatedFromRelease": release,
        "CreatedBy": created_by,
    }
