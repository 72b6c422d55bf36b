"""
Second-pass repack of a freshly written template.

Extracts the archive into a scratch folder and zips it again with
[Content_Types].xml first and every other entry in sorted order, which is
the layout the stricter OPC readers expect. The primary archive is only read.
"""
import logging
import shutil
import tempfile
import time
import zipfile
from pathlib import Path

from pbit_template.errors import RepackageWarning
from pbit_template.parts import CONTENT_TYPES_PATH, STORED_PARTS

_log = logging.getLogger("pbit_template.repackage")


def verified_path_for(archive_path) -> Path:
    archive_path = Path(archive_path)
    return archive_path.with_name(f"{archive_path.stem}.verified{archive_path.suffix}")


def _ordered_entries(scratch_dir: Path) -> list[str]:
    names = sorted(p.relative_to(scratch_dir).as_posix() for p in scratch_dir.rglob("*") if p.is_file())
    if CONTENT_TYPES_PATH in names:
        names.remove(CONTENT_TYPES_PATH)
        names.insert(0, CONTENT_TYPES_PATH)
    return names


def verify(archive_path, scratch_root=None, logger=None) -> Path:
    log = logger or _log
    archive_path = Path(archive_path)
    target = verified_path_for(archive_path)

    stamp = time.strftime("%Y%m%d-%H%M%S")
    try:
        if scratch_root:
            Path(scratch_root).mkdir(parents=True, exist_ok=True)
        scratch_dir = Path(tempfile.mkdtemp(prefix=f"pbit-repack-{stamp}-", dir=scratch_root))
    except OSError as exc:
        raise RepackageWarning(f"Could not create scratch directory under {scratch_root}: {exc}") from exc

    try:
        try:
            with zipfile.ZipFile(archive_path, "r") as zf:
                original = set(zf.namelist())
                zf.extractall(scratch_dir)
        except (OSError, zipfile.BadZipFile) as exc:
            raise RepackageWarning(f"Could not extract {archive_path}: {exc}") from exc

        if CONTENT_TYPES_PATH not in original:
            raise RepackageWarning(f"{archive_path} has no {CONTENT_TYPES_PATH}")

        entries = _ordered_entries(scratch_dir)
        if set(entries) != original:
            raise RepackageWarning(f"Extracted entries of {archive_path} do not match the archive listing")

        try:
            with zipfile.ZipFile(target, "w") as zf:
                for name in entries:
                    compress = zipfile.ZIP_STORED if name in STORED_PARTS else zipfile.ZIP_DEFLATED
                    zf.write(scratch_dir / name, arcname=name, compress_type=compress)
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise RepackageWarning(f"Could not write verified package {target}: {exc}") from exc

        log.info("Repacked %d entries into %s", len(entries), target)
        return target
    finally:
        shutil.rmtree(scratch_dir, ignore_errors=True)
