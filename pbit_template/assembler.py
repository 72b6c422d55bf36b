"""Assemble package parts into a .pbit archive and write it to disk."""
import io
import logging
import os
import tempfile
import zipfile
from pathlib import Path

from pbit_template import layout, parts
from pbit_template.errors import PackageWriteError

_log = logging.getLogger("pbit_template.assembler")

ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def build_parts(mapped, schema, measures, config, logger=None) -> list:
    log = logger or _log
    visuals = parts.discover_custom_visuals(config.custom_visuals_dir)
    if visuals:
        log.info("Bundling %d custom visual(s): %s", len(visuals), ", ".join(visuals))

    containers = list(config.visual_containers)
    if not containers and config.kpi_cards:
        modeled = {t["name"] for t in schema.tables}
        containers = layout.build_kpi_cards([m for m in measures if m["table"] in modeled], config.page_width)

    theme_file = Path(config.theme_path).name if config.theme_path else None
    report_layout = layout.build_report_layout(
        containers,
        filters=config.page_filters,
        theme_file=theme_file,
        custom_visuals=visuals,
        page_name=config.page_name,
        width=config.page_width,
        height=config.page_height,
    )

    out = [
        parts.content_types_part(),
        parts.relationships_part(),
        parts.version_part(config.version_marker),
        parts.security_bindings_part(config.security_bindings_template, log),
        *parts.table_parts(mapped),
        parts.schema_part(schema),
        parts.diagram_part(schema, config.node_spacing),
        parts.report_layout_part(report_layout),
        parts.settings_part(),
        parts.metadata_part(config.created_by, config.created_from, config.created_from_release),
    ]
    if config.theme_path:
        out.append(parts.theme_part(config.theme_path))
    out.extend(parts.custom_visual_parts(config.custom_visuals_dir, visuals))
    return out


def archive_parts(package_parts) -> bytes:
    buffer = io.BytesIO()
    seen = set()
    with zipfile.ZipFile(buffer, "w") as zf:
        for part in package_parts:
            if part.path in seen:
                raise PackageWriteError(f"Duplicate package part {part.path}")
            seen.add(part.path)
            info = zipfile.ZipInfo(part.path, date_time=ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED if part.compress else zipfile.ZIP_STORED
            zf.writestr(info, part.data)
    return buffer.getvalue()


def assemble(mapped, schema, measures, config, logger=None) -> bytes:
    log = logger or _log
    try:
        package_parts = build_parts(mapped, schema, measures, config, log)
    except OSError as exc:
        raise PackageWriteError(f"Could not read package asset: {exc}") from exc
    data = archive_parts(package_parts)
    log.info("Assembled %d parts (%d bytes)", len(package_parts), len(data))
    return data


def write_package(data: bytes, output_path) -> Path:
    """Write archive bytes next to output_path, then rename into place."""
    output_path = Path(output_path)
    if not data:
        raise PackageWriteError(f"Refusing to write empty package to {output_path}")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if os.path.getsize(tmp_name) == 0:
                raise PackageWriteError(f"Package written to {output_path} is empty")
            os.replace(tmp_name, output_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
    except OSError as exc:
        raise PackageWriteError(f"Could not write package to {output_path}: {exc}") from exc
    return output_path
