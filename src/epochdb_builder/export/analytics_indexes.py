"""Cross-reference indexes from the hand-maintained unique item analytics."""
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from epochdb_builder.utils.json_io import write_json_atomic


ANALYTICS_FILE = "analytics_unique_items_data.json"
LIST_KEYS = ("buildArchetypes", "skillSynergies", "damageTypes", "defensiveMechanisms", "buildEnablers", "buildTags")
DEFAULT_POWER_LEVEL = "Standard"


def _ranked(index: Dict[str, List[dict]], label: str = "name") -> List[Dict[str, Any]]:
    entries = [{label: key, "itemCount": len(items)} for key, items in index.items()]
    return sorted(entries, key=lambda e: (-e["itemCount"], e[label]))


class AnalyticsIndexBuilder:
    """Joins analytics annotations to the written unique item overview.

    The analytics file is keyed by unique item name; names missing from the
    overview are ignored.
    """

    def __init__(self, logger: Optional[structlog.BoundLogger] = None):
        self.logger = logger or structlog.get_logger(__name__)

    def build(self, analytics: Dict[str, Any], uniques: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Build every analytics index plus the summary.

        Args:
            analytics: Parsed analytics file content
            uniques: Records from the unique item overview file

        Returns:
            Mapping of index name to index content, plus ``summary``
        """
        by_name = {}
        for item in uniques:
            by_name.setdefault(item.get("name"), item)

        indexes: Dict[str, Dict[str, List[dict]]] = {key: {} for key in LIST_KEYS}
        indexes["powerLevels"] = {}
        indexes["classRestricted"] = {}

        matched = 0
        for name in sorted(analytics):
            annotations = analytics[name]
            item = by_name.get(name)
            if item is None or not isinstance(annotations, dict):
                self.logger.debug("Analytics entry has no unique item", name=name)
                continue
            matched += 1

            ref = {
                "id": item.get("id"),
                "name": item.get("name"),
                "category": item.get("category"),
                "levelRequirement": item.get("levelRequirement"),
                "classRequirement": item.get("classRequirement"),
                "dropRarity": item.get("dropRarity"),
            }
            for key in LIST_KEYS:
                for value in annotations.get(key) or []:
                    indexes[key].setdefault(value, []).append(ref)
            power_level = annotations.get("powerLevel") or DEFAULT_POWER_LEVEL
            indexes["powerLevels"].setdefault(power_level, []).append(ref)
            if item.get("classRequirement"):
                indexes["classRestricted"].setdefault(item["classRequirement"], []).append(ref)

        result: Dict[str, Any] = {key: {k: index[k] for k in sorted(index)} for key, index in indexes.items()}
        result["summary"] = {
            "totalItemsAnalyzed": len(analytics),
            "matchedItems": matched,
            "buildArchetypes": _ranked(indexes["buildArchetypes"]),
            "skillSynergies": _ranked(indexes["skillSynergies"]),
            "damageTypes": _ranked(indexes["damageTypes"]),
            "powerDistribution": [
                {"tier": tier, "itemCount": len(indexes["powerLevels"][tier])}
                for tier in sorted(indexes["powerLevels"])
            ],
            "classDistribution": [
                {"class": cls, "itemCount": len(indexes["classRestricted"][cls])}
                for cls in sorted(indexes["classRestricted"])
            ],
        }
        return result

    def write(self, target_dir: Path, built: Dict[str, Any]) -> List[str]:
        """Write the indexes into ``target_dir/analytics`` and the summary beside it."""
        written = []
        for name, index in built.items():
            if name == "summary":
                continue
            write_json_atomic(target_dir / "analytics" / f"{name}.json", index)
            written.append(f"analytics/{name}.json")
        write_json_atomic(target_dir / "analytics-summary.json", built["summary"])
        written.append("analytics-summary.json")
        self.logger.info("Created analytics indexes", indexes=len(written) - 1,
                         matched=built["summary"]["matchedItems"])
        return written
