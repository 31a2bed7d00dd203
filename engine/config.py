"""
Configuration for driftgraph.

Settings live in the analysed project's pyproject.toml under the
[tool.driftgraph] section. Every key is optional; missing keys fall back to
the defaults on DriftConfig. Unknown keys and values of the wrong type are
logged and ignored rather than rejected.

Example pyproject.toml:

    [tool.driftgraph]
    source_dirs = ["src"]
    exclude_dirs = ["node_modules", "dist", "generated"]
    snapshot_dir = ".driftgraph/snapshots"
    workers = 4
    max_depth = 5
"""

import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from loguru import logger


SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".py")
DOC_EXTENSIONS = (".md", ".mdx")
EXCLUDE_DIRS = (
    "node_modules",
    "dist",
    "build",
    ".git",
    ".next",
    "__pycache__",
    ".venv",
    "venv",
    ".driftgraph",
)


@dataclass(frozen=True)
class DriftConfig:
    """
    Resolved settings for snapshotting and call-graph building.

    Attributes:
        source_dirs: Directories (relative to the project) scanned for code;
            empty means the project root itself
        source_extensions: File extensions treated as source
        doc_extensions: File extensions treated as documentation
        exclude_dirs: Directory names skipped during every walk
        snapshot_dir: Where snapshots are written, relative to the project
        workers: Thread-pool size for snapshot extraction (1 = sequential)
        max_depth: Default call-graph depth limit
        resolve_imports: Follow imports across files when building call graphs
        extract_conditionals: Record conditional branches in call graphs
        track_exceptions: Record throw/raise sites in call graphs
    """

    source_dirs: tuple[str, ...] = ()
    source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS
    doc_extensions: tuple[str, ...] = DOC_EXTENSIONS
    exclude_dirs: tuple[str, ...] = EXCLUDE_DIRS
    snapshot_dir: str = ".driftgraph/snapshots"
    workers: int = 1
    max_depth: int = 3
    resolve_imports: bool = True
    extract_conditionals: bool = True
    track_exceptions: bool = True


_FIELD_TYPES = {f.name: f.type for f in fields(DriftConfig)}


def _coerce(key: str, value: Any) -> Any:
    """Validate one raw TOML value; raise ValueError when it does not fit."""
    expected = _FIELD_TYPES[key]
    default = getattr(DriftConfig, key)
    if isinstance(default, tuple):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"expected a list of strings, got {value!r}")
        return tuple(value)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"expected a boolean, got {value!r}")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"expected a positive integer, got {value!r}")
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected {expected}, got {value!r}")
    return value


def config_from_mapping(settings: dict[str, Any]) -> DriftConfig:
    """
    Build a DriftConfig from a raw [tool.driftgraph] table.

    Invalid entries are logged as warnings and replaced by defaults.
    """
    overrides: dict[str, Any] = {}
    for key, value in settings.items():
        if key not in _FIELD_TYPES:
            logger.warning(f"Ignoring unknown driftgraph setting '{key}'")
            continue
        try:
            overrides[key] = _coerce(key, value)
        except ValueError as exc:
            logger.warning(f"Invalid value for driftgraph setting '{key}': {exc}; using default")
    return replace(DriftConfig(), **overrides)


def load_config(project_path: Path | str, config_file: Optional[Path | str] = None) -> DriftConfig:
    """
    Load configuration for a project.

    Args:
        project_path: Project root (a file path uses its parent directory)
        config_file: Explicit TOML file; defaults to <project>/pyproject.toml

    Returns:
        DriftConfig with defaults for anything not configured
    """
    root = Path(project_path)
    if root.is_file():
        root = root.parent
    path = Path(config_file) if config_file is not None else root / "pyproject.toml"
    if not path.is_file():
        return DriftConfig()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning(f"Could not read configuration from {path}: {exc}; using defaults")
        return DriftConfig()

    settings = data.get("tool", {}).get("driftgraph")
    if settings is None:
        return DriftConfig()
    if not isinstance(settings, dict):
        logger.warning(f"[tool.driftgraph] in {path} is not a table; using defaults")
        return DriftConfig()
    logger.debug(f"Loaded driftgraph configuration from {path}")
    return config_from_mapping(settings)
