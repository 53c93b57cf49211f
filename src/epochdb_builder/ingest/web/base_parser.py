"""Shared plumbing for scraped-document parsers."""
import json
import re
from typing import Any, Callable, Iterable, List, Optional, Sequence, Set, Tuple

from bs4 import BeautifulSoup, Tag
import structlog

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category, WebRecord


_WHITESPACE = re.compile(r'\s+')


def make_soup(document: str) -> BeautifulSoup:
    return BeautifulSoup(document, "lxml")


def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def text_of(element: Optional[Tag]) -> str:
    """Whitespace-normalized text of an element, empty when missing."""
    if element is None:
        return ""
    return clean_text(element.get_text(" "))


def first_text(root: Tag, selectors: Sequence[str]) -> str:
    """Text of the first selector (in priority order) that yields any text."""
    for selector in selectors:
        text = text_of(root.select_one(selector))
        if text:
            return text
    return ""


def lines_of(element: Optional[Tag]) -> List[str]:
    """Split an element's content into lines at ``<br>`` tags."""
    if element is None:
        return []
    lines, current = [], []
    for child in element.children:
        if isinstance(child, Tag) and child.name == "br":
            lines.append(clean_text(" ".join(current)))
            current = []
        elif isinstance(child, Tag):
            current.append(child.get_text(" "))
        else:
            current.append(str(child))
    lines.append(clean_text(" ".join(current)))
    return [line for line in lines if line]


def regex_value(pattern: str, text: str) -> Optional[str]:
    match = re.search(pattern, text)
    return match.group(1).strip() if match else None


class BaseWebParser:
    """Parses one category of scraped documents into ``WebRecord`` lists.

    Subclasses implement ``parse``. Failures on individual cards are collected
    in ``failures`` rather than raised, so one bad card never sinks the batch.
    """

    category: Category = None
    source_files: Tuple[str, ...] = ()

    def __init__(self, logger: Optional[structlog.BoundLogger] = None):
        self.logger = logger or structlog.get_logger(__name__)
        self.failures: List[Tuple[str, str]] = []
        self.tags: Set[str] = set()

    def parse(self, document: str) -> List[WebRecord]:
        raise NotImplementedError

    def parse_source(self, file_name: str, document: str) -> List[WebRecord]:
        return self.parse(document)

    def load(self, ctx: BuildContext) -> List[WebRecord]:
        """Parse every source file that exists, degrading failures to warnings."""
        records: List[WebRecord] = []
        for file_name in self.source_files:
            path = ctx.paths.web_data_dir / file_name
            if not path.exists():
                ctx.info("Web source not found - skipping", self.category, file=file_name)
                continue

            self.failures = []
            try:
                document = path.read_text(encoding="utf-8")
                parsed = self.parse_source(file_name, document)
            except Exception as e:
                ctx.warn("Web source failed to parse - contributing nothing", self.category,
                         file=file_name, error=str(e))
                ctx.stats.count("web_sources_failed")
                continue

            self.report_failures(ctx, file_name)
            for record in parsed:
                record.source = file_name
            records.extend(parsed)
            ctx.info("Parsed web source", self.category, file=file_name, records=len(parsed))

        ctx.dataset.add_tags(self.tags)
        return records

    def report_failures(self, ctx: BuildContext, file_name: str) -> None:
        for label, error in self.failures:
            ctx.warn("Skipped unparseable record", self.category, file=file_name, record=label, error=error)
            ctx.stats.count("cards_failed")

    def collect(self, items: Iterable[Any], handler: Callable[[Any], Optional[WebRecord]],
                label: Callable[[Any, int], str]) -> List[WebRecord]:
        """Run ``handler`` on each item, isolating per-item failures."""
        records = []
        for index, item in enumerate(items):
            try:
                record = handler(item)
            except Exception as e:
                name = label(item, index)
                self.failures.append((name, str(e) or type(e).__name__))
                self.logger.warning("Failed to parse record", category=self.category.value,
                                    record=name, error=str(e))
                continue
            if record is not None:
                records.append(record)
        return records

    @staticmethod
    def card_label(card: Tag, index: int) -> str:
        name = first_text(card, (".item-name", ".affix-name", "h3", "h4"))
        return name or f"#{index + 1}"

    def track_tags(self, tags: Iterable[str]) -> List[str]:
        result = [t for t in (clean_text(t) for t in tags) if t]
        self.tags.update(result)
        return result


class JsonItemsParser(BaseWebParser):
    """Parser for ``{"items": [{"navText": ..., "rawHtml": ...}]}`` exports."""

    skip_names: Tuple[str, ...] = ("Changelog",)

    def parse(self, document: str) -> List[WebRecord]:
        data = json.loads(document)
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ValueError("document has no items array")
        items = [i for i in items if isinstance(i, dict) and clean_text(i.get("navText")) not in self.skip_names]
        return self.collect(items, self.parse_item,
                            lambda item, index: clean_text(item.get("navText")) or f"#{index + 1}")

    def parse_item(self, item: dict) -> Optional[WebRecord]:
        raise NotImplementedError
