"""Incremental build gate: skip the pipeline when nothing changed."""
from pathlib import Path
from typing import Iterable, List, Optional

import structlog

from epochdb_builder.core.config_manager import PathsConfig
from epochdb_builder.export import database_writer as files
from epochdb_builder.export import index_builder as indexes
from epochdb_builder.utils.json_io import load_json


RUN = "run"
SKIP = "skip"

DECLARED_OUTPUTS = files.SPECIALIZED_FILES + [
    files.VERSION_FILE,
    files.VALIDATION_REPORT_FILE,
    f"{indexes.INDEXES_DIR}/{indexes.ID_LOOKUP_FILE}",
    f"{indexes.INDEXES_DIR}/{indexes.TAGS_INDEX_FILE}",
    f"{indexes.INDEXES_DIR}/{indexes.MECHANICS_INDEX_FILE}",
    f"{indexes.INDEXES_DIR}/{indexes.MASTER_INDEX_FILE}",
]


def newest_mtime(paths: Iterable[Path]) -> float:
    newest = 0.0
    for path in paths:
        try:
            newest = max(newest, path.stat().st_mtime)
        except OSError:
            continue
    return newest


class BuildGate:
    """Decides between ``run`` and ``skip``.

    Skips only when every declared output exists and no template or override
    file is newer than the timestamp recorded by the last build.
    """

    def __init__(self, paths: PathsConfig, logger: Optional[structlog.BoundLogger] = None):
        self.paths = paths
        self.logger = logger or structlog.get_logger(__name__)

    def source_files(self) -> List[Path]:
        sources = []
        if self.paths.templates_dir.is_dir():
            sources.extend(p for p in self.paths.templates_dir.rglob("*.xml") if p.is_file())
        if self.paths.overrides_dir.is_dir():
            sources.extend(p for p in self.paths.overrides_dir.glob("*.json") if p.is_file())
        return sources

    def missing_outputs(self) -> List[str]:
        missing = [name for name in DECLARED_OUTPUTS if not (self.paths.output_dir / name).exists()]
        if not (self.paths.output_dir / files.SKILLS_DIR).is_dir():
            missing.append(files.SKILLS_DIR)
        return missing

    def last_build_time(self) -> Optional[float]:
        try:
            version = load_json(self.paths.output_dir / files.VERSION_FILE)
            return float(version["buildTimestamp"])
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def decide(self, force: bool = False) -> str:
        if force:
            self.logger.info("Forced rebuild requested")
            return RUN

        built_at = self.last_build_time()
        if built_at is None:
            self.logger.info("No usable build record - rebuilding")
            return RUN

        missing = self.missing_outputs()
        if missing:
            self.logger.info("Output files missing - rebuilding", missing=missing)
            return RUN

        newest = newest_mtime(self.source_files())
        if newest > built_at:
            self.logger.info("Sources changed since last build - rebuilding", newest_source=newest, built_at=built_at)
            return RUN

        self.logger.info("Database is up to date - skipping build", built_at=built_at)
        return SKIP
