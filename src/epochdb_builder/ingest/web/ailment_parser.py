"""Ailments from the scraped ailment export."""
from typing import Optional

from epochdb_builder.core.models import Category, WebRecord, slugify
from epochdb_builder.ingest.web.base_parser import JsonItemsParser, clean_text, make_soup, regex_value, text_of


class AilmentParser(JsonItemsParser):
    category = Category.AILMENT
    source_files = ("Ailments.json",)

    def parse_item(self, item: dict) -> Optional[WebRecord]:
        name = clean_text(item.get("navText"))
        if not name:
            raise ValueError("ailment has no name")

        attributes = {}
        if item.get("type"):
            attributes["type"] = clean_text(item["type"])

        raw_html = item.get("rawHtml") or ""
        doc = make_soup(raw_html)
        description = text_of(doc.select_one(".ailment-description"))

        container = doc.select_one(".ailment-bitmap-container")
        if container is not None:
            classes = container.get("class") or []
            if "positive" in classes:
                attributes["category"] = "positive"
            elif "negative" in classes:
                attributes["category"] = "negative"

        duration = regex_value(r'Duration:\s*<[^>]*><[^>]*>([^<]+)</[^>]*></[^>]*>', raw_html)
        if duration:
            attributes["duration"] = duration
        max_stacks = regex_value(r'Max stacks:\s*<[^>]*>([^<]+)</[^>]*>', raw_html)
        if max_stacks:
            attributes["maxStacks"] = max_stacks

        group = doc.select_one(".ailment-param-group")
        if group is not None:
            effects = [text_of(b) for b in group.select(".buff")]
            effects = [e for e in effects if e]
            if effects:
                attributes["effects"] = effects

        tags = self.track_tags(text_of(t) for t in doc.select(".ailment-tags .ailment-tag"))
        if tags:
            attributes["tags"] = tags

        return WebRecord(name=name, description=description, attributes=attributes, key=slugify(name))
