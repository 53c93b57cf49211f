"""Advisory data-quality checks over the merged dataset."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category, EntityId, Namespace


def format_id_ranges(ids: Sequence[EntityId]) -> str:
    """Collapse consecutive integer IDs: ``[1, 2, 3, 7]`` -> ``1-3, 7``."""
    parts: List[str] = []
    numbers = sorted(i for i in ids if isinstance(i, int))
    start = prev = None
    for number in numbers:
        if start is None:
            start = prev = number
        elif number == prev + 1:
            prev = number
        else:
            parts.append(str(start) if start == prev else f"{start}-{prev}")
            start = prev = number
    if start is not None:
        parts.append(str(start) if start == prev else f"{start}-{prev}")
    parts.extend(sorted(str(i) for i in ids if not isinstance(i, int)))
    return ", ".join(parts)


@dataclass
class CategoryReport:
    """Findings for a single category."""
    category: Optional[Category]
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duplicates: int = 0
    placeholders: List[EntityId] = field(default_factory=list)
    placeholders_by_namespace: Dict[str, int] = field(default_factory=dict)

    @property
    def has_issues(self) -> bool:
        return bool(self.errors or self.warnings or self.duplicates or self.placeholders)


@dataclass
class ValidationReport:
    game_version: str
    sections: List[CategoryReport] = field(default_factory=list)

    @property
    def total_errors(self) -> int:
        return sum(len(s.errors) for s in self.sections)

    @property
    def total_warnings(self) -> int:
        return sum(len(s.warnings) for s in self.sections)

    @property
    def total_duplicates(self) -> int:
        return sum(s.duplicates for s in self.sections)

    @property
    def total_placeholders(self) -> int:
        return sum(len(s.placeholders) for s in self.sections)

    def render(self) -> str:
        """Human-readable report; contains no timestamps so rebuilds compare equal."""
        lines = [
            "SUMMARY",
            "-" * 10,
            f"Total Issues: {self.total_errors} errors, {self.total_warnings} warnings, "
            f"{self.total_duplicates} duplicates",
            f"Unresolved Placeholders: {self.total_placeholders}",
            "",
            "Last Epoch Database Validation Report",
            f"Game Version: {self.game_version}",
            "=" * 60,
            "",
        ]
        for section in self.sections:
            if not section.has_issues:
                continue
            title = section.category.value.upper() if section.category else "GENERAL"
            lines.append(f"{title} VALIDATION ISSUES")
            lines.append("-" * 30)
            if section.errors:
                lines.append(f"ERRORS ({len(section.errors)}):")
                lines.extend(f"  - {e}" for e in section.errors)
                lines.append("")
            if section.warnings:
                lines.append(f"WARNINGS ({len(section.warnings)}):")
                lines.extend(f"  - {w}" for w in section.warnings)
                lines.append("")
            if section.duplicates:
                lines.append(f"DUPLICATES: {section.duplicates} found")
                lines.append("")
            if section.placeholders:
                detail = ""
                if section.placeholders_by_namespace:
                    detail = " (" + ", ".join(f"{k}: {v}" for k, v in section.placeholders_by_namespace.items()) + ")"
                lines.append(f"PLACEHOLDERS: {len(section.placeholders)} unresolved{detail}")
                lines.append(f"  IDs: {format_id_ranges(section.placeholders)}")
                lines.append("")
            lines.append("")
        return "\n".join(lines).rstrip("\n") + "\n"


class DataValidator:
    """Scans for duplicate names, sentinel names and unresolved placeholders.

    Findings are recorded on the build context and never stop the build.
    """

    def __init__(self, sentinel_markers: Sequence[str], logger: Optional[structlog.BoundLogger] = None):
        self.sentinel_markers = list(sentinel_markers)
        self.logger = logger or structlog.get_logger(__name__)

    def run(self, ctx: BuildContext) -> ValidationReport:
        report = ValidationReport(game_version=ctx.game_version)
        duplicates = {}
        for category in Category:
            duplicates[category] = self._check_category(ctx, category)

        # Sections are rendered from everything the build recorded, validator findings included
        general_errors, general_warnings = ctx.stats.issues_for(None)
        if general_errors or general_warnings:
            report.sections.append(CategoryReport(
                category=None,
                errors=[i.message for i in general_errors],
                warnings=[i.message for i in general_warnings],
            ))
        for category in Category:
            errors, warnings = ctx.stats.issues_for(category)
            store = ctx.dataset[category]
            section = CategoryReport(
                category=category,
                errors=[i.message for i in errors],
                warnings=[i.message for i in warnings],
                duplicates=duplicates[category],
                placeholders=[e.id for e in store.placeholders()],
            )
            if category is Category.AFFIX and section.placeholders:
                counts = {ns.value: 0 for ns in Namespace}
                counts["unclassified"] = 0
                for entity in store.placeholders():
                    counts[entity.namespace.value if entity.namespace else "unclassified"] += 1
                section.placeholders_by_namespace = counts
            report.sections.append(section)

        ctx.stats.count("duplicates_found", report.total_duplicates)
        ctx.stats.count("placeholders_unresolved", report.total_placeholders)
        self.logger.info("Validation complete", errors=report.total_errors, warnings=report.total_warnings,
                         duplicates=report.total_duplicates, placeholders=report.total_placeholders)
        return report

    def _check_category(self, ctx: BuildContext, category: Category) -> int:
        seen: Dict[str, EntityId] = {}
        duplicates = 0
        for entity in ctx.dataset[category].named():
            key = entity.name
            if category is Category.AFFIX and entity.namespace is not None:
                key = f"{entity.name}#{entity.namespace.value}"

            if key in seen:
                duplicates += 1
                scope = f" for {entity.namespace.value}s" if category is Category.AFFIX and entity.namespace else ""
                ctx.warn(f"Duplicate name{scope}", category, name=entity.name,
                         first_id=seen[key], duplicate_id=entity.id)
            else:
                seen[key] = entity.id

            if any(marker in entity.name for marker in self.sentinel_markers):
                ctx.warn("Unclear name", category, id=entity.id, name=entity.name)
        return duplicates
