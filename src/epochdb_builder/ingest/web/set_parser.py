"""Set item cards from the scraped set list."""
from bs4 import Tag

from epochdb_builder.core.models import Category, WebRecord
from epochdb_builder.ingest.web.base_parser import text_of
from epochdb_builder.ingest.web.unique_parser import UniqueItemParser


class SetItemParser(UniqueItemParser):
    """Set pieces share the unique card layout plus set name and bonuses."""

    category = Category.SET
    source_files = ("Sets.html",)

    card_selector = ".item-card.item-itemset"

    def accepts(self, card: Tag) -> bool:
        return True

    def parse_card(self, card: Tag) -> WebRecord:
        record = super().parse_card(card)
        set_name = text_of(card.select_one(".item-set-info .item-set-name"))
        if set_name:
            record.attributes["setName"] = set_name
        bonuses = [text_of(b) for b in card.select(".item-set-bonus")]
        record.attributes["setBonuses"] = [b for b in bonuses if b]
        return record
