"""Affix cards from the scraped prefix and suffix lists."""
from typing import Iterable, List, Optional

from bs4 import Tag

from epochdb_builder.core.models import Category, WebRecord
from epochdb_builder.ingest.namespace_classifier import keyword_namespace
from epochdb_builder.ingest.web.base_parser import BaseWebParser, first_text, make_soup
from epochdb_builder.ingest.web.tier_table import extract_tier_table


CARD_SELECTOR = ".affix-card, .item-card, .prefix-card, .suffix-card"
NAME_SELECTORS = (".affix-name", ".item-name", ".prefix-name", ".suffix-name", "h3", "h4")
DESCRIPTION_SELECTORS = (".affix-description", ".affix-effect", ".item-mod", ".description")

AFFIX_TYPES = {
    "Prefixes.html": "prefix",
    "Suffixes.html": "suffix",
}


class AffixParser(BaseWebParser):
    """Parses affix cards, including their tier tables."""

    category = Category.AFFIX
    source_files = tuple(AFFIX_TYPES)

    def __init__(self, idol_keywords: Iterable[str], logger=None):
        super().__init__(logger)
        self.idol_keywords = [k.lower() for k in idol_keywords]

    def parse_source(self, file_name: str, document: str) -> List[WebRecord]:
        return self.parse(document, affix_type=AFFIX_TYPES.get(file_name))

    def parse(self, document: str, affix_type: Optional[str] = None) -> List[WebRecord]:
        soup = make_soup(document)
        cards = soup.select(CARD_SELECTOR)
        # Cards nested in another matched card are part of their parent
        matched = {id(c) for c in cards}
        cards = [c for c in cards if not any(id(p) in matched for p in c.parents)]
        return self.collect(cards, lambda card: self.parse_card(card, affix_type), self.card_label)

    def parse_card(self, card: Tag, affix_type: Optional[str] = None) -> WebRecord:
        name = first_text(card, NAME_SELECTORS)
        if not name:
            raise ValueError("affix card has no name")

        attributes = {}
        if affix_type:
            attributes["affixType"] = affix_type
        tiers = extract_tier_table(card)
        if tiers:
            attributes["tiers"] = tiers

        return WebRecord(
            name=name,
            description=first_text(card, DESCRIPTION_SELECTORS),
            attributes=attributes,
            namespace_hint=keyword_namespace(name, self.idol_keywords),
        )
