"""Runs the full reconciliation pipeline."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.config_manager import AppConfig
from epochdb_builder.core.models import Category
from epochdb_builder.export.database_writer import DatabaseWriter
from epochdb_builder.export.index_builder import IndexBuilder
from epochdb_builder.ingest.namespace_classifier import NamespaceClassifier
from epochdb_builder.ingest.template_ingestor import TemplateIngestor
from epochdb_builder.ingest.web import (
    AffixParser, AilmentParser, MonsterParser, SetItemParser, SkillParser, UniqueItemParser,
)
from epochdb_builder.pipeline.build_gate import BuildGate, SKIP
from epochdb_builder.reconcile.override_manager import OverrideManager
from epochdb_builder.reconcile.reconciliation_engine import ReconciliationEngine
from epochdb_builder.validation.validator import DataValidator, ValidationReport


@dataclass
class BuildResult:
    """What a build (or a validate-only run) produced."""
    skipped: bool = False
    context: Optional[BuildContext] = None
    report: Optional[ValidationReport] = None
    written: List[str] = field(default_factory=list)
    master_index: Dict = field(default_factory=dict)


class DatabaseBuilder:
    """Gate, ingest, reconcile, override, validate, write, index.

    Template failures raise ``TemplateError`` before anything is written;
    everything after ingestion degrades to warnings on the context.
    """

    def __init__(self, config: AppConfig, logger: Optional[structlog.BoundLogger] = None):
        self.config = config
        self.logger = logger or structlog.get_logger(__name__)

    def web_parsers(self, ctx: BuildContext):
        return [
            AffixParser(ctx.config.classification.idol_keywords),
            UniqueItemParser(),
            SetItemParser(),
            SkillParser(),
            AilmentParser(),
            MonsterParser(),
        ]

    def prepare(self, game_version: Optional[str] = None) -> BuildContext:
        """Run every stage up to and including overrides."""
        ctx = BuildContext(self.config, game_version=game_version)
        ctx.info("Build started", game_version=ctx.game_version,
                 templates_dir=str(ctx.paths.templates_dir), output_dir=str(ctx.paths.output_dir))

        TemplateIngestor().run(ctx)
        classifier = NamespaceClassifier.from_master_template(ctx)
        classifier.run(ctx)

        engine = ReconciliationEngine()
        for parser in self.web_parsers(ctx):
            records = parser.load(ctx)
            engine.reconcile(ctx, parser.category, records)

        OverrideManager(ctx.paths.overrides_dir, classifier).run(ctx)
        return ctx

    def validate(self, game_version: Optional[str] = None) -> BuildResult:
        """Validate-only run; nothing is written to the output directory."""
        ctx = self.prepare(game_version)
        report = DataValidator(self.config.build.sentinel_markers).run(ctx)
        return BuildResult(context=ctx, report=report)

    def build(self, force: bool = False, game_version: Optional[str] = None) -> BuildResult:
        if not force and game_version is None and BuildGate(self.config.paths).decide() == SKIP:
            return BuildResult(skipped=True)
        if not force and game_version is not None:
            self.logger.info("Version-stamped build requested", game_version=game_version)

        result = self.validate(game_version)
        ctx = result.context

        writer = DatabaseWriter(ctx.paths.output_dir)
        result.written = writer.write(ctx, result.report)
        result.master_index = IndexBuilder(ctx.paths.output_dir).build(ctx)

        ctx.info("Database build complete",
                 named={c.value: len(ctx.dataset[c].named()) for c in Category},
                 warnings=len(ctx.stats.warnings), errors=len(ctx.stats.errors))
        writer.write_build_log(ctx)
        return result
