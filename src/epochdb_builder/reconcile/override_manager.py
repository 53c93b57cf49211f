"""Manual overrides and corrections, applied after reconciliation."""
import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import structlog

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category, Entity, EntityId, Namespace
from epochdb_builder.ingest.namespace_classifier import NamespaceClassifier, keyword_namespace


class OverrideManager:
    """Applies per-category override files from the overrides directory.

    Each file may hold two maps keyed by entity ID:

    - ``overrides``: full replacement of name, description and properties,
      created when the ID does not exist yet
    - ``corrections``: partial patch (``correctedName``, ``correctedDescription``,
      ``correctedProperties``), applied only to IDs that already exist
    """

    def __init__(self, overrides_dir: Path, classifier: Optional[NamespaceClassifier] = None,
                 logger: Optional[structlog.BoundLogger] = None):
        self.overrides_dir = overrides_dir
        self.classifier = classifier
        self.logger = logger or structlog.get_logger(__name__)

    def run(self, ctx: BuildContext) -> Dict[Category, Tuple[int, int]]:
        applied = {}
        for category in Category:
            applied[category] = self.apply(ctx, category)
        return applied

    def load(self, ctx: BuildContext, category: Category) -> Optional[Dict[str, Any]]:
        path = self.overrides_dir / f"{category.value}.json"
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            ctx.warn("Override file unreadable - skipping", category, file=path.name, error=str(e))
            return None
        if not isinstance(data, dict):
            ctx.warn("Override file is not an object - skipping", category, file=path.name)
            return None
        return data

    def apply(self, ctx: BuildContext, category: Category) -> Tuple[int, int]:
        """Apply overrides then corrections for one category.

        Returns:
            Number of overrides and corrections applied
        """
        data = self.load(ctx, category)
        if data is None:
            return 0, 0

        overrides = 0
        overridden = set()
        for raw_id, payload in (data.get("overrides") or {}).items():
            entity_id = self._parse_id(ctx, category, raw_id)
            if entity_id is None:
                continue
            if not isinstance(payload, dict) or not isinstance(payload.get("name"), str) or not payload["name"].strip():
                ctx.warn("Override has no name - skipping", category, id=raw_id)
                continue
            self._replace(ctx, category, entity_id, payload)
            overridden.add(entity_id)
            overrides += 1

        corrections = 0
        for raw_id, patch in (data.get("corrections") or {}).items():
            entity_id = self._parse_id(ctx, category, raw_id)
            if entity_id is None or not isinstance(patch, dict):
                continue
            if entity_id in overridden:
                ctx.warn("Correction ignored for overridden ID", category, id=entity_id)
                continue
            if self._correct(ctx, category, entity_id, patch):
                corrections += 1

        ctx.stats.count("overrides_applied", overrides)
        ctx.stats.count("corrections_applied", corrections)
        if overrides or corrections:
            ctx.info("Applied manual data", category, overrides=overrides, corrections=corrections)
        return overrides, corrections

    @staticmethod
    def _parse_id(ctx: BuildContext, category: Category, raw_id: str) -> Optional[EntityId]:
        if not category.has_templates:
            return raw_id
        try:
            return int(raw_id)
        except (TypeError, ValueError):
            ctx.warn("Override key is not a numeric ID - skipping", category, id=raw_id)
            return None

    def _replace(self, ctx: BuildContext, category: Category, entity_id: EntityId, payload: Dict[str, Any]) -> None:
        store = ctx.dataset[category]
        existing = store.get(entity_id)
        entity = Entity(
            id=entity_id,
            name=payload["name"],
            description=payload.get("description") or "",
            attributes=dict(payload.get("properties") or {}),
        )
        if category is Category.AFFIX:
            entity.namespace = self._override_namespace(ctx, entity_id, payload, existing)
        store.put(entity)
        self.logger.debug("Applied override", category=category.value, id=entity_id, name=entity.name,
                          created=existing is None)

    def _override_namespace(self, ctx: BuildContext, entity_id: EntityId, payload: Dict[str, Any],
                            existing: Optional[Entity]) -> Optional[Namespace]:
        """Explicit namespace, then authoritative sets, then the slot's, then keywords."""
        explicit = payload.get("namespace")
        if explicit:
            try:
                return Namespace(str(explicit).lower())
            except ValueError:
                ctx.warn("Override namespace is not idol or item - ignored", Category.AFFIX,
                         id=entity_id, namespace=explicit)
        if self.classifier is not None:
            authoritative = self.classifier.authoritative(entity_id)
            if authoritative is not None:
                return authoritative
        if existing is not None and existing.namespace is not None:
            return existing.namespace
        return keyword_namespace(payload["name"], ctx.config.classification.idol_keywords)

    def _correct(self, ctx: BuildContext, category: Category, entity_id: EntityId, patch: Dict[str, Any]) -> bool:
        entity = ctx.dataset[category].get(entity_id)
        if entity is None:
            ctx.warn("Correction target does not exist - skipping", category, id=entity_id)
            return False

        if patch.get("correctedName"):
            entity.name = patch["correctedName"]
            if category is Category.AFFIX and entity.namespace is None:
                entity.namespace = keyword_namespace(entity.name, ctx.config.classification.idol_keywords)
        if patch.get("correctedDescription") is not None:
            entity.description = patch["correctedDescription"]
        if isinstance(patch.get("correctedProperties"), dict):
            entity.attributes.update(patch["correctedProperties"])
        self.logger.debug("Applied correction", category=category.value, id=entity_id, reason=patch.get("reason"))
        return True
