"""In-memory game dataset assembled during a build."""
from typing import Dict, Iterator, List, Optional, Set

from epochdb_builder.core.models import (
    Category, Entity, EntityId, Namespace, id_sort_key,
)


class EntityStore:
    """ID-keyed entities of one category.

    Keeps the set of IDs declared by templates separately from the live map
    so completion and the slot-count guarantee can be checked after merges.
    """

    def __init__(self, category: Category):
        self.category = category
        self._entities: Dict[EntityId, Entity] = {}
        self.declared_ids: Set[EntityId] = set()

    def __contains__(self, entity_id: EntityId) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.sorted())

    def get(self, entity_id: EntityId) -> Optional[Entity]:
        return self._entities.get(entity_id)

    def put(self, entity: Entity) -> None:
        self._entities[entity.id] = entity

    def declare(self, entity: Entity) -> None:
        """Register a template slot and record its ID as declared."""
        self._entities[entity.id] = entity
        self.declared_ids.add(entity.id)

    def sorted(self) -> List[Entity]:
        return [self._entities[k] for k in sorted(self._entities, key=id_sort_key)]

    def named(self) -> List[Entity]:
        return [e for e in self.sorted() if not e.is_placeholder]

    def placeholders(self) -> List[Entity]:
        return [e for e in self.sorted() if e.is_placeholder]

    def in_namespace(self, namespace: Optional[Namespace]) -> List[Entity]:
        return [e for e in self.sorted() if e.namespace == namespace]

    def completion(self) -> int:
        """Percentage of entities that carry a name."""
        if not self._entities:
            return 0
        return round(len(self.named()) * 100 / len(self._entities))


class GameDataset:
    """All categories plus the template reference tables and tag vocabulary."""

    def __init__(self):
        self.stores: Dict[Category, EntityStore] = {c: EntityStore(c) for c in Category}
        self.colors: Dict[int, str] = {}
        self.sounds: Dict[int, str] = {}
        self.beams: Dict[int, str] = {}
        self.global_tags: Set[str] = set()
        self.idol_affix_ids: Set[int] = set()
        self.item_affix_ids: Set[int] = set()

    def __getitem__(self, category: Category) -> EntityStore:
        return self.stores[category]

    def reference_table(self, name: str) -> Dict[int, str]:
        return {"colors": self.colors, "sounds": self.sounds, "beams": self.beams}[name]

    def add_tags(self, tags) -> None:
        for tag in tags or []:
            if tag:
                self.global_tags.add(tag)
