"""Parsers for scraped web documents, one per entity category."""

from .affix_parser import AffixParser
from .ailment_parser import AilmentParser
from .monster_parser import MonsterParser
from .set_parser import SetItemParser
from .skill_parser import SkillParser
from .unique_parser import UniqueItemParser

__all__ = [
    "AffixParser",
    "AilmentParser",
    "MonsterParser",
    "SetItemParser",
    "SkillParser",
    "UniqueItemParser",
]
