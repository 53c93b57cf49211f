"""Core data types shared by every pipeline stage."""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


EntityId = Union[int, str]


class Category(str, Enum):
    """Entity categories, valued by their override/output file stem."""
    AFFIX = "affixes"
    UNIQUE = "uniques"
    SET = "sets"
    SKILL = "skills"
    AILMENT = "ailments"
    MONSTER = "monsters"

    @property
    def has_templates(self) -> bool:
        """Whether IDs for this category are declared by XML templates."""
        return self in TEMPLATE_CATEGORIES


class Namespace(str, Enum):
    """Affix partition inside which names must be unique."""
    IDOL = "idol"
    ITEM = "item"


TEMPLATE_CATEGORIES = (Category.AFFIX, Category.UNIQUE, Category.SET)
WEB_ONLY_CATEGORIES = (Category.SKILL, Category.AILMENT, Category.MONSTER)


@dataclass
class Entity:
    """A single reconciled record.

    A template slot without a name is a placeholder. Only affixes carry a
    namespace; it stays None for placeholders nothing could classify.
    """
    id: EntityId
    name: Optional[str] = None
    description: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    namespace: Optional[Namespace] = None

    @property
    def is_placeholder(self) -> bool:
        return self.name is None

    def to_record(self) -> Dict[str, Any]:
        """Flatten into the output record shape (namespace is not included)."""
        record: Dict[str, Any] = {"id": self.id, "name": self.name, "description": self.description}
        for key, value in self.attributes.items():
            if key not in record:
                record[key] = value
        return record


@dataclass
class WebRecord:
    """A name-keyed descriptor parsed from a scraped document."""
    name: str
    description: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    namespace_hint: Optional[Namespace] = None
    source: str = ""
    # Stable ID for categories without templates
    key: str = ""


def id_sort_key(entity_id: EntityId):
    """Numeric IDs sort numerically and ahead of string IDs."""
    if isinstance(entity_id, int):
        return (0, entity_id, "")
    return (1, 0, str(entity_id))


def slugify(*parts: str) -> str:
    """Build a stable lowercase identifier from one or more names."""
    text = "_".join(p for p in parts if p)
    slug = re.sub(r'[^a-z0-9]+', '_', text.lower())
    return slug.strip('_')
