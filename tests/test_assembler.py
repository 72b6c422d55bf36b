import codecs
import io
import json
import zipfile

import pytest

from pbit_template import parts
from pbit_template.assembler import archive_parts, assemble, build_parts, write_package
from pbit_template.config import GeneratorConfig
from pbit_template.errors import PackageWriteError
from pbit_template.mapper import map_project_data
from pbit_template.measures import build_measure_catalog
from pbit_template.schema import build_schema

from conftest import read_utf16_json

REQUIRED_PARTS = {
    "[Content_Types].xml",
    "_rels/.rels",
    "Version",
    "SecurityBindings",
    "DataModelSchema",
    "DiagramLayout",
    "Report/Layout",
    "Settings",
    "Metadata",
}


def build(project, config=None):
    mapped = map_project_data(project)
    measures = build_measure_catalog()
    schema = build_schema(mapped, measures)
    data = assemble(mapped, schema, measures, config or GeneratorConfig())
    return mapped, schema, zipfile.ZipFile(io.BytesIO(data))


def test_required_parts_present(minimal_project):
    _, _, zf = build(minimal_project)
    names = set(zf.namelist())
    assert REQUIRED_PARTS <= names
    assert {"tables/tasks.json", "tables/resources.json", "tables/assignments.json"} <= names
    assert "tables/properties.json" not in names


def test_content_types_manifest(minimal_project):
    _, _, zf = build(minimal_project)
    raw = zf.read("[Content_Types].xml")
    assert raw.startswith(codecs.BOM_UTF8)
    text = raw[len(codecs.BOM_UTF8):].decode("utf-8")
    assert '<Default Extension="json" ContentType="" />' in text
    assert '<Override PartName="/DataModelSchema" ContentType="" />' in text
    assert zf.read("_rels/.rels").startswith(codecs.BOM_UTF8)


def test_version_is_stored_utf16(minimal_project):
    _, _, zf = build(minimal_project)
    info = zf.getinfo("Version")
    assert info.compress_type == zipfile.ZIP_STORED
    assert zf.read("Version") == "1.28".encode("utf-16-le")
    assert zf.getinfo("DataModelSchema").compress_type == zipfile.ZIP_DEFLATED


@pytest.mark.parametrize("name", ["DataModelSchema", "DiagramLayout", "Report/Layout", "Settings", "Metadata",
                                  "tables/tasks.json"])
def test_utf16_parts_have_no_bom(minimal_project, name):
    _, _, zf = build(minimal_project)
    raw = zf.read(name)
    assert not raw.startswith(codecs.BOM_UTF16_LE)
    json.loads(raw.decode("utf-16-le"))


def test_table_files_hold_mapped_rows(minimal_project):
    mapped, _, zf = build(minimal_project)
    tasks = read_utf16_json(zf, "tables/tasks.json")
    resources = read_utf16_json(zf, "tables/resources.json")
    assert len(tasks) == 1 and len(resources) == 1
    assert tasks[0] == mapped.tasks[0]


def test_security_bindings_empty_without_template(minimal_project):
    _, _, zf = build(minimal_project)
    assert zf.read("SecurityBindings") == b""


def test_security_bindings_copied_from_template(minimal_project, tmp_path):
    template = tmp_path / "SecurityBindings"
    template.write_bytes(b"\x01\x02binding")
    _, _, zf = build(minimal_project, GeneratorConfig(security_bindings_template=template))
    assert zf.read("SecurityBindings") == b"\x01\x02binding"


def test_missing_security_template_still_writes_part(minimal_project, tmp_path):
    _, _, zf = build(minimal_project, GeneratorConfig(security_bindings_template=tmp_path / "nope"))
    assert zf.read("SecurityBindings") == b""


def test_diagram_nodes_follow_lineage_tags(sample_project):
    _, schema, zf = build(sample_project, GeneratorConfig(node_spacing=250))
    diagram = read_utf16_json(zf, "DiagramLayout")["diagrams"][0]
    nodes = diagram["nodes"]
    assert [n["nodeIndex"] for n in nodes] == ["tasks", "resources", "assignments", "properties"]
    assert [n["location"]["x"] for n in nodes] == [0, 250, 500, 750]
    for node in nodes:
        assert node["nodeLineageTag"] == schema.lineage_tags[node["nodeIndex"]]


def test_schema_part_matches_schema(minimal_project):
    _, schema, zf = build(minimal_project)
    doc = read_utf16_json(zf, "DataModelSchema")
    assert doc["name"] == schema.id
    assert len(doc["model"]["relationships"]) == 2


def test_report_layout_defaults_to_empty_page(minimal_project):
    _, _, zf = build(minimal_project)
    report = read_utf16_json(zf, "Report/Layout")
    assert len(report["sections"]) == 1
    section = report["sections"][0]
    assert section["visualContainers"] == []
    assert json.loads(section["filters"]) == []
    assert json.loads(report["config"])["activeSectionIndex"] == 0
    assert report["resourcePackages"] == []


def test_caller_visuals_and_filters(minimal_project):
    container = {"x": 0, "y": 0, "z": 0, "width": 100, "height": 100, "config": "{}", "filters": "[]"}
    config = GeneratorConfig(visual_containers=(container,), page_filters=({"name": "f1"},), kpi_cards=True)
    _, _, zf = build(minimal_project, config)
    section = read_utf16_json(zf, "Report/Layout")["sections"][0]
    assert section["visualContainers"] == [container]
    assert json.loads(section["filters"]) == [{"name": "f1"}]


def test_kpi_cards_for_modeled_measures(minimal_project):
    _, _, zf = build(minimal_project, GeneratorConfig(kpi_cards=True))
    containers = read_utf16_json(zf, "Report/Layout")["sections"][0]["visualContainers"]
    assert len(containers) == 6
    first = json.loads(containers[0]["config"])
    assert first["singleVisual"]["visualType"] == "card"
    assert first["singleVisual"]["projections"]["Values"][0]["queryRef"] == "tasks.Total Work Hours"
    assert all(c["x"] + c["width"] <= 1280 for c in containers)


def test_theme_is_bundled(minimal_project, tmp_path):
    theme = tmp_path / "CY24SU06.json"
    theme.write_text('{"name": "CY24SU06"}', encoding="utf-8")
    _, _, zf = build(minimal_project, GeneratorConfig(theme_path=theme))
    assert zf.read("Report/StaticResources/SharedResources/BaseThemes/CY24SU06.json") == theme.read_bytes()
    report = read_utf16_json(zf, "Report/Layout")
    item = report["resourcePackages"][0]["resourcePackage"]["items"][0]
    assert item == {"type": 202, "path": "BaseThemes/CY24SU06.json", "name": "CY24SU06"}
    assert json.loads(report["config"])["themeCollection"]["baseTheme"]["name"] == "CY24SU06"


def test_custom_visuals_copied_and_registered(minimal_project, tmp_path):
    assets = tmp_path / "visuals"
    visual = assets / "ganttChart1234"
    (visual / "resources").mkdir(parents=True)
    (visual / "package.json").write_bytes(b'{"visual": 1}')
    (visual / "resources" / "gantt.pbiviz.json").write_bytes(b"\x00binary\xff")
    _, _, zf = build(minimal_project, GeneratorConfig(custom_visuals_dir=assets))
    assert zf.read("Report/CustomVisuals/ganttChart1234/package.json") == b'{"visual": 1}'
    assert zf.read("Report/CustomVisuals/ganttChart1234/resources/gantt.pbiviz.json") == b"\x00binary\xff"
    report = read_utf16_json(zf, "Report/Layout")
    package = report["resourcePackages"][0]["resourcePackage"]
    assert package["name"] == "ganttChart1234"
    assert [i["path"] for i in package["items"]] == ["package.json", "resources/gantt.pbiviz.json"]
    assert json.loads(report["config"])["publicCustomVisuals"] == ["ganttChart1234"]


def test_missing_theme_is_a_packaging_error(minimal_project, tmp_path):
    with pytest.raises(PackageWriteError, match=r"^\[packaging\] Could not read package asset"):
        build(minimal_project, GeneratorConfig(theme_path=tmp_path / "nope.json"))


def test_missing_custom_visuals_dir_is_skipped(minimal_project, tmp_path):
    _, _, zf = build(minimal_project, GeneratorConfig(custom_visuals_dir=tmp_path / "absent"))
    assert not any(n.startswith("Report/CustomVisuals/") for n in zf.namelist())


def test_metadata_and_settings(minimal_project):
    _, _, zf = build(minimal_project, GeneratorConfig(created_by="unit-test"))
    metadata = read_utf16_json(zf, "Metadata")
    assert metadata["CreatedBy"] == "unit-test"
    assert metadata["CreatedFrom"] == "Cloud"
    assert metadata["Version"] == 5
    assert read_utf16_json(zf, "Settings")["Version"] == 4


def test_build_parts_are_immutable_descriptors(minimal_project):
    mapped = map_project_data(minimal_project)
    schema = build_schema(mapped, [])
    package_parts = build_parts(mapped, schema, [], GeneratorConfig())
    assert all(isinstance(p, parts.PackagePart) for p in package_parts)
    assert package_parts[0].path == "[Content_Types].xml"
    with pytest.raises(AttributeError):
        package_parts[0].path = "other"


def test_duplicate_part_paths_rejected():
    part = parts.PackagePart("Settings", b"x")
    with pytest.raises(PackageWriteError):
        archive_parts([part, part])


def test_write_package_creates_directories(tmp_path):
    target = tmp_path / "nested" / "dir" / "out.pbit"
    assert write_package(b"PK\x05\x06" + b"\x00" * 18, target) == target
    assert target.stat().st_size == 22
    assert [p.name for p in target.parent.iterdir()] == ["out.pbit"]


def test_write_package_refuses_empty_data(tmp_path):
    target = tmp_path / "out.pbit"
    with pytest.raises(PackageWriteError, match=r"^\[packaging\]"):
        write_package(b"", target)
    assert not target.exists()


def test_write_package_wraps_os_errors(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(PackageWriteError):
        write_package(b"data", blocker / "out.pbit")
