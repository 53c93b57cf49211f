"""Build-scoped state threaded through every pipeline stage."""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import structlog

from epochdb_builder.core.config_manager import AppConfig
from epochdb_builder.core.dataset import GameDataset
from epochdb_builder.core.models import Category


@dataclass
class BuildIssue:
    """A warning or error recorded during the build."""
    level: str
    event: str
    category: Optional[Category] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        if not self.fields:
            return self.event
        details = ", ".join(f"{k}={v}" for k, v in self.fields.items())
        return f"{self.event} ({details})"


@dataclass
class BuildStatistics:
    """Accumulates issues, counters and log lines for one build."""
    warnings: List[BuildIssue] = field(default_factory=list)
    errors: List[BuildIssue] = field(default_factory=list)
    counters: Counter = field(default_factory=Counter)
    log_lines: List[str] = field(default_factory=list)

    def count(self, key: str, amount: int = 1) -> None:
        self.counters[key] += amount

    def issues_for(self, category: Optional[Category]) -> Tuple[List[BuildIssue], List[BuildIssue]]:
        """Return (errors, warnings) recorded against a category."""
        return (
            [i for i in self.errors if i.category == category],
            [i for i in self.warnings if i.category == category],
        )


class BuildContext:
    """Mutable context for a single pipeline run.

    Stages read configuration from it, mutate ``dataset`` and report through
    ``info``/``warn``/``error`` so every issue reaches both the structured log
    and the build statistics.
    """

    def __init__(self, config: AppConfig, game_version: Optional[str] = None,
                 logger: Optional[structlog.BoundLogger] = None,
                 started_at: Optional[datetime] = None):
        self.config = config
        self.paths = config.paths
        self.game_version = game_version or config.build.game_version
        self.started_at = started_at or datetime.now(timezone.utc)
        self.logger = logger or structlog.get_logger(__name__)
        self.dataset = GameDataset()
        self.stats = BuildStatistics()
        self.template_count = 0
        self.namespace_degraded = False

    def _line(self, level: str, issue: BuildIssue) -> None:
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        scope = f"[{issue.category.value}] " if issue.category else ""
        self.stats.log_lines.append(f"{stamp} {level.upper():7} {scope}{issue.message}")

    def info(self, event: str, category: Optional[Category] = None, **fields) -> None:
        self.logger.info(event, category=category.value if category else None, **fields)
        self._line("info", BuildIssue("info", event, category, fields))

    def warn(self, event: str, category: Optional[Category] = None, **fields) -> None:
        issue = BuildIssue("warning", event, category, fields)
        self.stats.warnings.append(issue)
        self.logger.warning(event, category=category.value if category else None, **fields)
        self._line("warning", issue)

    def error(self, event: str, category: Optional[Category] = None, **fields) -> None:
        issue = BuildIssue("error", event, category, fields)
        self.stats.errors.append(issue)
        self.logger.error(event, category=category.value if category else None, **fields)
        self._line("error", issue)

    @property
    def build_timestamp(self) -> float:
        return self.started_at.timestamp()
