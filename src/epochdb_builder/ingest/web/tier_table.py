"""Tier table extraction from affix cards.

Scraped affix cards come in more than one markup shape. Each strategy takes a
card element and returns a column table ``{"Tier": [...], "<column>": [...]}``
or None; ``extract_tier_table`` tries them in order.
"""
import math
from typing import Callable, Dict, List, Optional

from bs4 import NavigableString, Tag

from epochdb_builder.ingest.web.base_parser import clean_text, text_of


TierTable = Dict[str, List[str]]


def cell_value(cell: Tag) -> str:
    """One ``.mod-value`` is used as-is, two become a ``low to high`` range."""
    values = [text_of(v) for v in cell.select(".mod-value")]
    if len(values) == 1:
        return values[0]
    if len(values) == 2:
        return f"{values[0]} to {values[1]}"
    return text_of(cell)


def header_label(element: Tag) -> str:
    """Leading text of a header cell, up to a ``<br>`` or ``.mod-type`` span."""
    parts = []
    for child in element.children:
        if isinstance(child, NavigableString):
            parts.append(str(child))
            continue
        if child.name == "br" or "mod-type" in (child.get("class") or []):
            break
        parts.append(child.get_text(" "))
    label = clean_text(" ".join(parts))
    return label or text_of(element)


def _unique_columns(names: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    result = []
    for name in names:
        name = name or "Value"
        seen[name] = seen.get(name, 0) + 1
        result.append(name if seen[name] == 1 else f"{name} ({seen[name]})")
    return result


def modern_tier_table(card: Tag) -> Optional[TierTable]:
    table = card.select_one(".tier-table")
    if table is None:
        return None

    rows = table.select(".affix[tier]")
    if not rows:
        return None

    header = table.select_one(".tier-header")
    if header is None:
        return None
    columns = [header_label(h) for h in header.select(".affix-tier-range")]
    if not columns:
        return None
    widest = max(len(row.select(".affix-tier-range")) for row in rows)
    while len(columns) < widest:
        columns.append("Value")
    columns = _unique_columns(columns)

    result: TierTable = {"Tier": []}
    for column in columns:
        result[column] = []

    for row in rows:
        result["Tier"].append(text_of(row.select_one(".affix-tier-name")) or clean_text(row.get("tier")))
        cells = row.select(".affix-tier-range")
        for index, column in enumerate(columns):
            result[column].append(cell_value(cells[index]) if index < len(cells) else "")
    return result


def legacy_tier_table(card: Tag) -> Optional[TierTable]:
    values = [text_of(v) for v in card.select(".mod-value")]
    if not values:
        return None

    # One header cell per .mod-type; the remaining ranges hold values
    ranges = card.select(".affix-tier-range")
    headers = [header_label(h) for h in ranges[:len(card.select(".mod-type"))]]
    # Repeated per-tier headers collapse into one column each
    headers = list(dict.fromkeys(h for h in headers if h)) or ["Value"]

    tiers = math.ceil(len(values) / len(headers))
    result: TierTable = {"Tier": [f"T{i + 1}" for i in range(tiers)]}
    for header in headers:
        result[header] = []
    for index, value in enumerate(values):
        result[headers[index % len(headers)]].append(value)
    for header in headers:
        result[header].extend([""] * (tiers - len(result[header])))
    return result


TIER_STRATEGIES: List[Callable[[Tag], Optional[TierTable]]] = [
    modern_tier_table,
    legacy_tier_table,
]


def extract_tier_table(card: Tag) -> Optional[TierTable]:
    for strategy in TIER_STRATEGIES:
        table = strategy(card)
        if table:
            return table
    return None
