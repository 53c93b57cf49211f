"""Links name-keyed web records to ID-keyed template slots."""
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.dataset import EntityStore
from epochdb_builder.core.models import Category, Entity, Namespace, WebRecord, slugify


@dataclass
class ReconcileResult:
    """Outcome counts for one category."""
    merged: int = 0
    filled: int = 0
    created: int = 0
    dropped: int = 0


def merge_into(entity: Entity, record: WebRecord) -> None:
    """Enrich an entity in place; name and ID stay as they are."""
    entity.attributes.update(record.attributes)
    if record.description:
        entity.description = record.description


class _SlotIndex:
    """Name and placeholder lookups over one store, kept current while filling."""

    def __init__(self, store: EntityStore):
        self.by_name: Dict[str, List[Entity]] = {}
        self.placeholders: List[Entity] = []
        for entity in store.sorted():
            if entity.is_placeholder:
                self.placeholders.append(entity)
            else:
                self.by_name.setdefault(entity.name, []).append(entity)

    def named(self, name: str, namespace: Optional[Namespace], scoped: bool) -> Optional[Entity]:
        """Lowest-ID filled slot with this name.

        For namespaced stores a slot in the hinted namespace wins; otherwise the
        lowest-ID match decides the namespace.
        """
        matches = self.by_name.get(name, [])
        if not matches:
            return None
        if scoped:
            in_namespace = [e for e in matches if e.namespace == namespace]
            if in_namespace:
                return in_namespace[0]
        return matches[0]

    def take_placeholder(self, namespace: Optional[Namespace], scoped: bool) -> Optional[Entity]:
        for index, entity in enumerate(self.placeholders):
            if not scoped or entity.namespace is None or entity.namespace == namespace:
                return self.placeholders.pop(index)
        return None

    def add_named(self, entity: Entity) -> None:
        matches = self.by_name.setdefault(entity.name, [])
        matches.append(entity)
        matches.sort(key=lambda e: e.id)


class ReconciliationEngine:
    """Greedy, order-fixed matching of web records to template slots.

    Records are processed in source order. For each record the engine
    1. merges into the lowest-ID filled slot with the same name (same namespace
       for affixes),
    2. otherwise fills the lowest-ID placeholder of that category/namespace,
    3. otherwise drops the record with a single surplus warning.
    Categories without templates key records by their slug instead.
    """

    def __init__(self, logger: Optional[structlog.BoundLogger] = None):
        self.logger = logger or structlog.get_logger(__name__)

    def reconcile(self, ctx: BuildContext, category: Category, records: List[WebRecord]) -> ReconcileResult:
        if category.has_templates:
            result = self._reconcile_templates(ctx, category, records)
        else:
            result = self._collect_web_only(ctx, category, records)

        ctx.stats.count("records_merged", result.merged)
        ctx.stats.count("placeholders_filled", result.filled)
        ctx.stats.count("surplus_dropped", result.dropped)
        ctx.info("Reconciled web records", category, records=len(records), merged=result.merged,
                 filled=result.filled, created=result.created, dropped=result.dropped)
        return result

    def _reconcile_templates(self, ctx: BuildContext, category: Category,
                             records: List[WebRecord]) -> ReconcileResult:
        store = ctx.dataset[category]
        scoped = category is Category.AFFIX
        index = _SlotIndex(store)
        result = ReconcileResult()

        for record in records:
            namespace = record.namespace_hint if scoped else None
            slot = index.named(record.name, namespace, scoped)
            if slot is not None:
                merge_into(slot, record)
                result.merged += 1
                continue

            slot = index.take_placeholder(namespace, scoped)
            if slot is not None:
                slot.name = record.name
                slot.description = record.description
                slot.attributes = dict(record.attributes)
                if scoped and slot.namespace is None:
                    slot.namespace = namespace
                index.add_named(slot)
                result.filled += 1
                self.logger.debug("Filled placeholder", category=category.value, id=slot.id, name=record.name)
                continue

            ctx.warn("Surplus record, no template slot", category, name=record.name,
                     namespace=namespace.value if namespace else None, source=record.source or None)
            result.dropped += 1

        return result

    def _collect_web_only(self, ctx: BuildContext, category: Category,
                          records: List[WebRecord]) -> ReconcileResult:
        store = ctx.dataset[category]
        result = ReconcileResult()
        for record in records:
            key = record.key or slugify(record.name)
            if not key:
                ctx.warn("Record has no usable identifier - skipping", category, name=record.name)
                result.dropped += 1
                continue

            existing = store.get(key)
            if existing is not None:
                ctx.warn("Duplicate web record merged", category, id=key, name=record.name)
                merge_into(existing, record)
                result.merged += 1
                continue

            store.put(Entity(id=key, name=record.name, description=record.description,
                             attributes=dict(record.attributes)))
            result.created += 1
        return result
