"""Unique item cards from the scraped item list."""
import re
from typing import List, Optional

from bs4 import Tag

from epochdb_builder.core.models import Category, WebRecord
from epochdb_builder.ingest.web.base_parser import (
    BaseWebParser, clean_text, lines_of, make_soup, regex_value, text_of,
)


DROP_RARITY = re.compile(r'^(Extremely rare|Very rare|Rare|Uncommon|Common)', re.IGNORECASE)
ITEM_KIND = re.compile(r'^(Unique|Set|Legendary)\s+', re.IGNORECASE)


class UniqueItemParser(BaseWebParser):
    """Parses ``.item-card`` entries that are not part of an item set."""

    category = Category.UNIQUE
    source_files = ("ItemList.html",)

    card_selector = ".item-card"

    def parse(self, document: str) -> List[WebRecord]:
        soup = make_soup(document)
        cards = [c for c in soup.select(self.card_selector) if self.accepts(c)]
        return self.collect(cards, self.parse_card, self.card_label)

    def accepts(self, card: Tag) -> bool:
        return "item-itemset" not in (card.get("class") or [])

    def parse_card(self, card: Tag) -> WebRecord:
        name = text_of(card.select_one(".item-name"))
        if not name:
            raise ValueError("item card has no name")

        category, base_type = self._item_type(card)
        implicits, modifiers = self._modifiers(card)

        attributes = {
            "baseType": base_type,
            "category": category,
            "levelRequirement": int(regex_value(r'Requires Level:\s*(\d+)', text_of(card.select_one(".item-req"))) or 1),
        }
        class_requirement = regex_value(r'Requires Class:\s*(.+)', text_of(card.select_one(".item-req2")))
        if class_requirement:
            attributes["classRequirement"] = class_requirement
        attributes["implicits"] = implicits
        attributes["modifiers"] = modifiers
        drop_rarity = self._drop_rarity(card)
        if drop_rarity:
            attributes["dropRarity"] = drop_rarity

        return WebRecord(name=name, description=text_of(card.select_one(".item-lore")), attributes=attributes)

    @staticmethod
    def _item_type(card: Tag):
        """Category from the first line, base type from the second."""
        element = card.select_one(".item-type")
        lines = lines_of(element)
        category = lines[0] if lines else ""
        base_type = ""
        if len(lines) > 1:
            link = element.find("a")
            base_type = text_of(link) if link is not None else ITEM_KIND.sub("", lines[1])
        return category, clean_text(base_type)

    @staticmethod
    def _modifiers(card: Tag):
        implicits, modifiers = [], []
        target = modifiers
        for element in card.select(".implicits-title, .modifiers-title, .item-mod-unique"):
            classes = element.get("class") or []
            if "implicits-title" in classes:
                target = implicits
            elif "modifiers-title" in classes:
                target = modifiers
            else:
                text = text_of(element)
                if text:
                    target.append(text)
        return implicits, modifiers

    @staticmethod
    def _drop_rarity(card: Tag) -> Optional[str]:
        for drop in card.select(".dropped-from .random-drop"):
            item = drop.find_parent("li")
            chance = item.select_one(".drop-chance") if item is not None else None
            match = DROP_RARITY.match(text_of(chance))
            if match:
                return match.group(1)
        return None
