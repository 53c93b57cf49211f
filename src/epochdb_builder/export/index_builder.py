"""Lookup indexes rebuilt from the written database files."""
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import id_sort_key
from epochdb_builder.export import database_writer as files
from epochdb_builder.export.analytics_indexes import ANALYTICS_FILE, AnalyticsIndexBuilder
from epochdb_builder.utils.json_io import atomic_directory, load_json, write_json_atomic


INDEXES_DIR = "indexes"
ID_LOOKUP_FILE = "id-lookup.json"
TAGS_INDEX_FILE = "tags-index.json"
MECHANICS_INDEX_FILE = "mechanics-index.json"
MASTER_INDEX_FILE = "database-index.json"

# Seed table of damage mechanics; not derived from data
MECHANIC_HIERARCHY = {
    "Fire": {"parent": "Elemental", "children": ["Fire"]},
    "Cold": {"parent": "Elemental", "children": ["Cold"]},
    "Lightning": {"parent": "Elemental", "children": ["Lightning"]},
    "Physical": {"parent": None, "children": ["Physical"]},
    "Void": {"parent": None, "children": ["Void"]},
    "Necrotic": {"parent": None, "children": ["Necrotic"]},
    "Poison": {"parent": "Damage Over Time", "children": ["Poison"]},
}

# Fields kept per lookup entry besides the name
PROJECTIONS = {
    "idolAffixes": ("affixType",),
    "itemAffixes": ("affixType",),
    "uniques": ("baseType", "category"),
    "sets": ("setName",),
    "skills": ("class",),
    "ailments": ("category",),
    "monsters": ("type",),
}


def project(record: Dict[str, Any], fields) -> Dict[str, Any]:
    entry = {"name": record.get("name")}
    for field in fields:
        if record.get(field) not in (None, ""):
            entry[field] = record[field]
    return entry


class IndexBuilder:
    """Builds the ``indexes/`` directory from files already on disk.

    Reading the output rather than in-memory state means the indexes always
    describe exactly what downstream tools will load.
    """

    def __init__(self, output_dir: Path, logger: Optional[structlog.BoundLogger] = None):
        self.output_dir = output_dir
        self.logger = logger or structlog.get_logger(__name__)

    def load_categories(self) -> Dict[str, List[Dict[str, Any]]]:
        """Records per lookup category, read back from the database files."""
        out = self.output_dir
        skills: List[Dict[str, Any]] = []
        skills_dir = out / files.SKILLS_DIR
        if skills_dir.is_dir():
            for path in sorted(skills_dir.glob("*.json")):
                section = load_json(path)
                for skill in section.get("skills", []):
                    record = dict(skill)
                    record.setdefault("class", skill.get("class") or section.get("section"))
                    skills.append(record)
            skills.sort(key=lambda r: id_sort_key(r.get("id")))

        return {
            "idolAffixes": load_json(out / files.IDOL_AFFIXES_FILE).get("affixes", []),
            "itemAffixes": load_json(out / files.ITEM_AFFIXES_FILE).get("affixes", []),
            "uniques": load_json(out / files.UNIQUES_OVERVIEW_FILE).get("uniques", []),
            "sets": load_json(out / files.SET_DATA_FILE).get("sets", []),
            "skills": skills,
            "ailments": load_json(out / files.AILMENTS_FILE).get("ailments", []),
            "monsters": load_json(out / files.MONSTERS_FILE).get("monsters", []),
        }

    @staticmethod
    def build_id_lookup(categories: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
        return {
            name: {str(record["id"]): project(record, PROJECTIONS[name]) for record in records}
            for name, records in categories.items()
        }

    @staticmethod
    def build_tag_index(categories: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Any]:
        by_tag: Dict[str, Dict[str, list]] = {}
        for name, records in categories.items():
            for record in records:
                tags = record.get("tags")
                if not isinstance(tags, list):
                    continue
                for tag in tags:
                    ids = by_tag.setdefault(tag, {}).setdefault(name, [])
                    if record["id"] not in ids:
                        ids.append(record["id"])
        ordered = {}
        for tag in sorted(by_tag):
            ordered[tag] = {name: sorted(ids, key=id_sort_key) for name, ids in sorted(by_tag[tag].items())}
        return {"byTag": ordered}

    def build(self, ctx: BuildContext) -> Dict[str, Any]:
        """Write all indexes and return the master summary."""
        version = load_json(self.output_dir / files.VERSION_FILE)
        reference = load_json(self.output_dir / files.REFERENCE_FILE)
        global_tags = load_json(self.output_dir / files.GLOBAL_TAGS_FILE).get("globalTags", [])
        categories = self.load_categories()

        id_lookup = self.build_id_lookup(categories)
        tag_index = self.build_tag_index(categories)

        index_files = {
            "idLookup": f"{INDEXES_DIR}/{ID_LOOKUP_FILE}",
            "tagIndex": f"{INDEXES_DIR}/{TAGS_INDEX_FILE}",
            "mechanicsIndex": f"{INDEXES_DIR}/{MECHANICS_INDEX_FILE}",
        }

        with atomic_directory(self.output_dir / INDEXES_DIR) as staging:
            write_json_atomic(staging / ID_LOOKUP_FILE, id_lookup)
            write_json_atomic(staging / TAGS_INDEX_FILE, tag_index)
            write_json_atomic(staging / MECHANICS_INDEX_FILE, {"mechanicHierarchy": MECHANIC_HIERARCHY})
            if self._build_analytics(ctx, staging, categories["uniques"]):
                index_files["analyticsSummary"] = f"{INDEXES_DIR}/analytics-summary.json"

            counts = {name: len(records) for name, records in categories.items()}
            master = {
                "gameVersion": version.get("gameVersion"),
                "stats": {
                    **counts,
                    "affixes": counts["idolAffixes"] + counts["itemAffixes"],
                    "totalItems": counts["idolAffixes"] + counts["itemAffixes"] + counts["uniques"] + counts["sets"],
                    "indexedTags": len(tag_index["byTag"]),
                },
                "indexFiles": index_files,
                "globalTags": global_tags,
                "colors": reference.get("colors", {}),
                "sounds": reference.get("sounds", {}),
                "beams": reference.get("beams", {}),
            }
            write_json_atomic(staging / MASTER_INDEX_FILE, master)

        ctx.info("Generated indexes", tags=master["stats"]["indexedTags"], total_items=master["stats"]["totalItems"])
        return master

    def _build_analytics(self, ctx: BuildContext, staging: Path, uniques: List[Dict[str, Any]]) -> bool:
        path = ctx.paths.overrides_dir / ANALYTICS_FILE
        if not path.exists():
            self.logger.info("No analytics data available for index generation", file=str(path))
            return False
        try:
            analytics = load_json(path)
            if not isinstance(analytics, dict):
                raise ValueError("analytics file must be an object keyed by item name")
            builder = AnalyticsIndexBuilder()
            builder.write(staging, builder.build(analytics, uniques))
            return True
        except Exception as e:
            ctx.warn("Failed to generate analytics indexes", file=ANALYTICS_FILE, error=str(e))
            return False
