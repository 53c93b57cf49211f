"""Monsters from the scraped monster export."""
from typing import Optional

from epochdb_builder.core.models import Category, WebRecord, slugify
from epochdb_builder.ingest.web.base_parser import JsonItemsParser, clean_text, make_soup, regex_value, text_of
from epochdb_builder.ingest.web.skill_parser import nested_stat, scaling_blocks


class MonsterParser(JsonItemsParser):
    category = Category.MONSTER
    source_files = ("Monsters.json",)

    def parse_item(self, item: dict) -> Optional[WebRecord]:
        name = clean_text(item.get("navText"))
        if not name:
            raise ValueError("monster has no name")

        attributes = {}
        if item.get("type"):
            attributes["type"] = clean_text(item["type"])

        raw_html = item.get("rawHtml") or ""
        health = regex_value(r'Health:\s*<[^>]*><[^>]*>(\d+)</[^>]*></[^>]*>', raw_html)
        if health is not None:
            attributes["health"] = int(health)
        for key, label in (("healthRegeneration", "Health Regeneration"), ("threat", "Threat")):
            value = nested_stat(raw_html, label)
            if value is not None:
                attributes[key] = value

        doc = make_soup(raw_html)
        for param in doc.select(".entity-params"):
            text = text_of(param)
            if "Scaling Tags:" in text or "Minion Tags:" in text:
                key = "scalingTags" if "Scaling Tags:" in text else "minionTags"
                tags = self.track_tags(text_of(t) for t in param.select(".ability-tag"))
                if tags and key not in attributes:
                    attributes[key] = tags
            elif "Stats:" in text:
                stats = [text_of(b) for b in param.select(".buff")]
                attributes["stats"] = [s for s in stats if s]
            elif "Scaling:" in text:
                attributes["scaling"] = scaling_blocks(param)

        return WebRecord(name=name, description=clean_text(item.get("description")),
                         attributes=attributes, key=slugify(name))
