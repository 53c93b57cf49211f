"""Deterministic serialization of the reconciled dataset."""
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category, Entity, Namespace, slugify
from epochdb_builder.utils.json_io import atomic_directory, dumps, write_json_atomic, write_text_atomic
from epochdb_builder.validation.validator import ValidationReport


REFERENCE_FILE = "colors-sounds-beams.json"
GLOBAL_TAGS_FILE = "global-tags.json"
IDOL_AFFIXES_FILE = "idol-affixes.json"
ITEM_AFFIXES_FILE = "item-affixes.json"
UNIQUES_OVERVIEW_FILE = "unique-items-overview.json"
SET_DATA_FILE = "set-data.json"
AILMENTS_FILE = "ailments.json"
MONSTERS_FILE = "monsters.json"
SKILLS_DIR = "Skills"
VERSION_FILE = "database-version.json"
VALIDATION_REPORT_FILE = "validation-report.txt"
BUILD_LOG_FILE = "build.log"

SPECIALIZED_FILES = [
    REFERENCE_FILE,
    GLOBAL_TAGS_FILE,
    IDOL_AFFIXES_FILE,
    ITEM_AFFIXES_FILE,
    UNIQUES_OVERVIEW_FILE,
    SET_DATA_FILE,
    AILMENTS_FILE,
    MONSTERS_FILE,
]


def unique_overview(entity: Entity) -> Dict[str, Any]:
    """Bulk-consumption projection of a unique item."""
    attributes = entity.attributes
    return {
        "id": entity.id,
        "name": entity.name,
        "description": entity.description,
        "baseType": attributes.get("baseType") or "",
        "category": attributes.get("category") or "",
        "levelRequirement": attributes.get("levelRequirement"),
        "classRequirement": attributes.get("classRequirement") or "",
        "dropRarity": attributes.get("dropRarity") or "N/A",
    }


class DatabaseWriter:
    """Writes every category into its specialized output file.

    Entities are emitted sorted by ID and only once they carry a name. Each
    file is replaced atomically; the skill directory is swapped as a whole.
    """

    def __init__(self, output_dir: Path, logger: Optional[structlog.BoundLogger] = None):
        self.output_dir = output_dir
        self.logger = logger or structlog.get_logger(__name__)

    def write(self, ctx: BuildContext, report: ValidationReport) -> List[str]:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        dataset = ctx.dataset
        written = []

        written.append(self._write_json(REFERENCE_FILE, {
            "colors": self._reference(dataset.colors),
            "sounds": self._reference(dataset.sounds),
            "beams": self._reference(dataset.beams),
        }))
        written.append(self._write_json(GLOBAL_TAGS_FILE, {"globalTags": sorted(dataset.global_tags)}))

        idol_affixes, item_affixes = self.split_affixes(dataset[Category.AFFIX].named())
        written.append(self._write_json(IDOL_AFFIXES_FILE, {"affixes": idol_affixes}))
        written.append(self._write_json(ITEM_AFFIXES_FILE, {"affixes": item_affixes}))

        written.append(self._write_json(UNIQUES_OVERVIEW_FILE, {
            "uniques": [unique_overview(e) for e in dataset[Category.UNIQUE].named()],
        }))
        written.append(self._write_json(SET_DATA_FILE, {
            "sets": [e.to_record() for e in dataset[Category.SET].named()],
        }))
        written.append(self._write_json(AILMENTS_FILE, {
            "ailments": [e.to_record() for e in dataset[Category.AILMENT].named()],
        }))
        written.append(self._write_json(MONSTERS_FILE, {
            "monsters": [e.to_record() for e in dataset[Category.MONSTER].named()],
        }))
        written.extend(self.write_skills(dataset[Category.SKILL].named()))

        write_text_atomic(self.output_dir / VALIDATION_REPORT_FILE, report.render())
        written.append(VALIDATION_REPORT_FILE)

        written.append(self._write_json(VERSION_FILE, {
            "gameVersion": ctx.game_version,
            "buildDate": ctx.started_at.isoformat(),
            "buildTimestamp": ctx.build_timestamp,
            "templateCount": ctx.template_count,
            "specializedFiles": SPECIALIZED_FILES,
            "format": "specialized-json",
        }))

        ctx.info("Database files written", files=len(written), output_dir=str(self.output_dir))
        return written

    @staticmethod
    def _reference(table: Dict[int, str]) -> Dict[str, str]:
        return {str(key): table[key] for key in sorted(table)}

    @staticmethod
    def split_affixes(affixes: List[Entity]):
        """Split by namespace; the namespace becomes implicit in the file."""
        idol, item = [], []
        for entity in affixes:
            target = idol if entity.namespace is Namespace.IDOL else item
            target.append(entity.to_record())
        return idol, item

    def write_skills(self, skills: List[Entity]) -> List[str]:
        sections: Dict[str, Dict[str, Any]] = {}
        for entity in skills:
            section = entity.attributes.get("section") or "Other"
            data = sections.setdefault(section, {
                "section": section,
                "type": entity.attributes.get("sectionType", "other"),
                "skills": [],
            })
            data["skills"].append(entity.to_record())

        written = []
        with atomic_directory(self.output_dir / SKILLS_DIR) as staging:
            for section in sorted(sections, key=slugify):
                file_name = f"{slugify(section)}.json"
                (staging / file_name).write_text(dumps(sections[section]), encoding="utf-8")
                written.append(f"{SKILLS_DIR}/{file_name}")
        self.logger.info("Saved skill section files", sections=len(written))
        return written

    def write_build_log(self, ctx: BuildContext) -> None:
        lines = [
            f"Database build log - game version {ctx.game_version}",
            f"Started: {ctx.started_at.isoformat()}",
            "",
        ]
        lines.extend(ctx.stats.log_lines)
        lines.append("")
        lines.append("Counters:")
        lines.extend(f"  {key}: {ctx.stats.counters[key]}" for key in sorted(ctx.stats.counters))
        write_text_atomic(self.output_dir / BUILD_LOG_FILE, "\n".join(lines) + "\n")

    def _write_json(self, file_name: str, data: Any) -> str:
        write_json_atomic(self.output_dir / file_name, data)
        self.logger.debug("Saved output file", file=file_name)
        return file_name
