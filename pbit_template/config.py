import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class GeneratorConfig:
    """Per-run settings for generate_package; nothing here is process-wide."""

    custom_visuals_dir: Optional[Path] = None
    security_bindings_template: Optional[Path] = None
    theme_path: Optional[Path] = None
    visual_containers: tuple = ()
    page_filters: tuple = ()
    kpi_cards: bool = False
    scratch_root: Optional[Path] = None
    repackage: bool = True
    require_repackage: bool = False
    require_resources: bool = True
    node_spacing: int = 300
    page_width: int = 1280
    page_height: int = 720
    created_by: str = "pbit-template-generator"
    created_from: str = "Cloud"
    created_from_release: str = "2024.04"
    version_marker: str = "1.28"
    compatibility_level: int = 1550
    page_name: str = "Project Overview"

    @classmethod
    def from_args(cls, args) -> "GeneratorConfig":
        visuals = load_visuals(args.visuals) if getattr(args, "visuals", None) else {}
        return cls(
            custom_visuals_dir=_opt_path(getattr(args, "custom_visuals_dir", None)),
            security_bindings_template=_opt_path(getattr(args, "security_bindings", None)),
            theme_path=_opt_path(getattr(args, "theme", None)),
            visual_containers=tuple(visuals.get("visualContainers", [])),
            page_filters=tuple(visuals.get("filters", [])),
            kpi_cards=bool(getattr(args, "kpi_cards", False)),
            scratch_root=_opt_path(getattr(args, "scratch_dir", None)),
            repackage=not getattr(args, "no_repackage", False),
            require_repackage=bool(getattr(args, "strict_repackage", False)),
            require_resources=not getattr(args, "allow_no_resources", False),
        )


def _opt_path(value) -> Optional[Path]:
    return Path(value) if value else None


def load_visuals(path) -> dict:
    """Visual definitions file: {"visualContainers": [...], "filters": [...]}."""
    with Path(path).open("r", encoding="utf-8-sig") as f:
        data = json.load(f)
    if isinstance(data, list):
        return {"visualContainers": data, "filters": []}
    if not isinstance(data, dict):
        raise ValueError(f"Visual definitions in {path} must be an object or a list")
    return data
