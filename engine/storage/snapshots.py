"""
Snapshot Store for driftgraph

Captures, persists and reloads immutable structural snapshots of a project's
source files and documentation.

Design Decisions:
    - One JSON file per snapshot: `snapshot-<timestamp>.json`, where the
      timestamp is `YYYY-MM-DDTHH-MM-SS-ffffffZ` so file names sort
      chronologically
    - Snapshot files are opened in exclusive-create mode and never rewritten
    - Source extraction may fan out to a thread pool; results are merged on
      the calling thread in sorted path order so snapshots are deterministic
    - A malformed or unreadable latest snapshot is reported as a warning and
      treated as "no snapshot available"

Storage Layout:
    <project>/.driftgraph/snapshots/
        snapshot-2026-01-05T09-14-03-118274Z.json
        snapshot-2026-01-06T17-40-51-002913Z.json
"""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from engine.config import DriftConfig
from engine.models import DocumentationSnapshot, DriftSnapshot, FileAnalysis
from engine.parser.extractor import StructuralExtractor
from engine.storage.documentation import DocumentationExtractor


SNAPSHOT_PREFIX = "snapshot-"
SNAPSHOT_SUFFIX = ".json"


def snapshot_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with microseconds, e.g. 2026-01-05T09:14:03.118274Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def snapshot_filename(timestamp: str) -> str:
    """File name for a snapshot timestamp; `:` and `.` become `-`."""
    return f"{SNAPSHOT_PREFIX}{timestamp.replace(':', '-').replace('.', '-')}{SNAPSHOT_SUFFIX}"


def _walk(root: Path, extensions: Iterable[str], excluded: Iterable[str]) -> list[Path]:
    if root.is_file():
        return [root]
    if not root.is_dir():
        return []
    extensions = tuple(extensions)
    excluded = set(excluded)
    files = []
    for path in sorted(root.rglob("*")):
        if path.suffix.lower() not in extensions or not path.is_file():
            continue
        if any(part in excluded for part in path.relative_to(root).parts[:-1]):
            continue
        files.append(path)
    return files


class SnapshotStore:
    """
    Creates and persists DriftSnapshots for one project.

    Attributes:
        project_path: Project root
        snapshot_dir: Directory holding snapshot files
        config: Resolved configuration

    Example:
        >>> store = SnapshotStore("my-project")
        >>> snapshot = store.create_snapshot(docs_path="my-project/docs")
        >>> store.save_snapshot(snapshot)
        >>> store.load_latest_snapshot().timestamp == snapshot.timestamp
        True
    """

    def __init__(
        self,
        project_path: Path | str,
        snapshot_dir: Optional[Path | str] = None,
        config: Optional[DriftConfig] = None,
    ):
        self.project_path = Path(project_path).resolve()
        self.config = config or DriftConfig()
        if snapshot_dir is None:
            snapshot_dir = self.project_path / self.config.snapshot_dir
        self.snapshot_dir = Path(snapshot_dir)
        self._extractor = StructuralExtractor()
        self._doc_extractor = DocumentationExtractor()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def source_files(self, project_path: Optional[Path | str] = None) -> list[Path]:
        """Source files under the configured source directories, sorted."""
        root = Path(project_path).resolve() if project_path is not None else self.project_path
        roots = [root / d for d in self.config.source_dirs] or [root]
        files: list[Path] = []
        for source_root in roots:
            files.extend(_walk(source_root, self.config.source_extensions, self.config.exclude_dirs))
        return sorted(dict.fromkeys(files))

    def documentation_files(self, docs_path: Path | str) -> list[Path]:
        return _walk(Path(docs_path).resolve(), self.config.doc_extensions, self.config.exclude_dirs)

    def _extract_sources(self, files: list[Path]) -> dict[str, FileAnalysis]:
        if self.config.workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                results = list(pool.map(self._extractor.analyze_file, files))
        else:
            results = [self._extractor.analyze_file(f) for f in files]

        analyses: dict[str, FileAnalysis] = {}
        for path, analysis in zip(files, results):
            if analysis is not None:
                analyses[str(path)] = analysis
        return analyses

    def create_snapshot(
        self,
        project_path: Optional[Path | str] = None,
        docs_path: Optional[Path | str] = None,
    ) -> DriftSnapshot:
        """
        Capture the current state of code and documentation.

        Args:
            project_path: Project to scan; defaults to the store's project
            docs_path: Documentation directory; defaults to <project>/docs

        Returns:
            A new DriftSnapshot (not yet saved)
        """
        root = Path(project_path).resolve() if project_path is not None else self.project_path
        docs_root = Path(docs_path) if docs_path is not None else root / "docs"

        files = self.source_files(root)
        analyses = self._extract_sources(files)

        documentation: dict[str, DocumentationSnapshot] = {}
        for doc_path in self.documentation_files(docs_root):
            doc = self._doc_extractor.extract_file(doc_path)
            if doc is not None:
                documentation[str(doc_path)] = doc

        logger.debug(
            f"Captured {len(analyses)} source files and {len(documentation)} documentation files from {root}"
        )
        return DriftSnapshot(
            project_path=str(root),
            timestamp=snapshot_timestamp(),
            files=analyses,
            documentation=documentation,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_snapshot(self, snapshot: DriftSnapshot) -> Path:
        """
        Write a snapshot to the snapshot directory.

        Returns:
            Path of the written file

        Raises:
            FileExistsError: If a snapshot with the same timestamp exists
        """
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)
        path = self.snapshot_dir / snapshot_filename(snapshot.timestamp)
        with open(path, "x", encoding="utf-8") as f:
            json.dump(snapshot.to_dict(), f, indent=2)
        logger.info(f"Saved snapshot {path.name} ({len(snapshot.files)} files)")
        return path

    def list_snapshots(self) -> list[Path]:
        """Saved snapshot files, newest first."""
        if not self.snapshot_dir.is_dir():
            return []
        return sorted(
            self.snapshot_dir.glob(f"{SNAPSHOT_PREFIX}*{SNAPSHOT_SUFFIX}"),
            key=lambda p: p.name,
            reverse=True,
        )

    def load_snapshot(self, path: Path | str) -> Optional[DriftSnapshot]:
        """Load one snapshot file; None (with a warning) if it is unusable."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return DriftSnapshot.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning(f"Could not load snapshot {path}: {exc}")
            return None

    def load_latest_snapshot(self) -> Optional[DriftSnapshot]:
        """The most recent snapshot, or None when none is available."""
        snapshots = self.list_snapshots()
        if not snapshots:
            return None
        return self.load_snapshot(snapshots[0])
