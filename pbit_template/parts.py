"""
Package parts for the .pbit container.

Each builder returns an immutable PackagePart. Encodings are part specific:
the OPC XML parts are UTF-8 with a BOM, the Power BI documents are UTF-16LE
without one, and the Version marker must be stored uncompressed.
"""
import codecs
import json
import logging
from pathlib import Path
from typing import NamedTuple, Optional

from pbit_template import layout

_log = logging.getLogger("pbit_template.parts")

CONTENT_TYPES_PATH = "[Content_Types].xml"
RELS_PATH = "_rels/.rels"
VERSION_PATH = "Version"
SECURITY_BINDINGS_PATH = "SecurityBindings"
DATA_MODEL_SCHEMA_PATH = "DataModelSchema"
DIAGRAM_LAYOUT_PATH = "DiagramLayout"
REPORT_LAYOUT_PATH = "Report/Layout"
SETTINGS_PATH = "Settings"
METADATA_PATH = "Metadata"
TABLES_PREFIX = "tables/"
BASE_THEMES_PREFIX = "Report/StaticResources/SharedResources/BaseThemes/"
CUSTOM_VISUALS_PREFIX = "Report/CustomVisuals/"

# Power BI accepts (and writes) empty content types for its own parts.
EMPTY_CONTENT_TYPE_PARTS = (
    VERSION_PATH,
    DATA_MODEL_SCHEMA_PATH,
    DIAGRAM_LAYOUT_PATH,
    REPORT_LAYOUT_PATH,
    SETTINGS_PATH,
    METADATA_PATH,
    SECURITY_BINDINGS_PATH,
)
STORED_PARTS = frozenset({VERSION_PATH})


class PackagePart(NamedTuple):
    path: str
    data: bytes
    compress: bool = True


def utf16(text: str) -> bytes:
    return text.encode("utf-16-le")


def utf8_bom(text: str) -> bytes:
    return codecs.BOM_UTF8 + text.encode("utf-8")


def json_part(path: str, payload) -> PackagePart:
    return PackagePart(path, utf16(layout.dumps(payload)))


def content_types_part() -> PackagePart:
    overrides = "".join(
        f'<Override PartName="/{name}" ContentType="" />' for name in EMPTY_CONTENT_TYPE_PARTS
    )
    xml = (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        '<Default Extension="json" ContentType="" />'
        f"{overrides}"
        "</Types>"
    )
    return PackagePart(CONTENT_TYPES_PATH, utf8_bom(xml))


def relationships_part() -> PackagePart:
    xml = (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships" />'
    )
    return PackagePart(RELS_PATH, utf8_bom(xml))


def version_part(marker: str) -> PackagePart:
    return PackagePart(VERSION_PATH, utf16(marker), compress=False)


def security_bindings_part(template: Optional[Path], logger=None) -> PackagePart:
    log = logger or _log
    if template and Path(template).is_file():
        return PackagePart(SECURITY_BINDINGS_PATH, Path(template).read_bytes())
    if template:
        log.warning("Security bindings template %s not found, writing an empty part", template)
    return PackagePart(SECURITY_BINDINGS_PATH, b"")


def table_parts(mapped) -> list[PackagePart]:
    return [
        PackagePart(f"{TABLES_PREFIX}{name}.json", utf16(json.dumps([dict(r) for r in rows], ensure_ascii=False)))
        for name, rows in mapped.non_empty()
    ]


def schema_part(schema) -> PackagePart:
    return json_part(DATA_MODEL_SCHEMA_PATH, schema.to_document())


def diagram_part(schema, spacing: int) -> PackagePart:
    names = [t["name"] for t in schema.tables]
    return json_part(DIAGRAM_LAYOUT_PATH, layout.build_diagram_layout(names, schema.lineage_tags, spacing))


def report_layout_part(report_layout: dict) -> PackagePart:
    return json_part(REPORT_LAYOUT_PATH, report_layout)


def settings_part() -> PackagePart:
    return json_part(SETTINGS_PATH, layout.build_settings())


def metadata_part(created_by: str, created_from: str, release: str) -> PackagePart:
    return json_part(METADATA_PATH, layout.build_metadata(created_by, created_from, release))


def theme_part(theme_path: Path) -> PackagePart:
    theme_path = Path(theme_path)
    return PackagePart(BASE_THEMES_PREFIX + theme_path.name, theme_path.read_bytes())


def discover_custom_visuals(assets_dir) -> dict:
    """Map registered visual id -> sorted relative file paths; {} when the folder is absent."""
    if not assets_dir:
        return {}
    root = Path(assets_dir)
    if not root.is_dir():
        return {}
    visuals = {}
    for visual_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        files = sorted(p.relative_to(visual_dir).as_posix() for p in visual_dir.rglob("*") if p.is_file())
        if files:
            visuals[visual_dir.name] = files
    return visuals


def custom_visual_parts(assets_dir, visuals: dict) -> list[PackagePart]:
    root = Path(assets_dir) if assets_dir else None
    parts = []
    for visual_id, files in visuals.items():
        for rel in files:
            data = (root / visual_id / rel).read_bytes()
            parts.append(PackagePart(f"{CUSTOM_VISUALS_PREFIX}{visual_id}/{rel}", data))
    return parts
