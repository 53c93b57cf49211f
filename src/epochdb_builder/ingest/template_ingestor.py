"""Parses loot-filter XML templates into per-category entity slots."""
import re
from pathlib import Path
from typing import List, Optional

from lxml import etree
import structlog

from epochdb_builder import TemplateError
from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category, Entity, TEMPLATE_CATEGORIES


PLACEHOLDER_LABELS = {
    Category.AFFIX: "Affix",
    Category.UNIQUE: "Unique",
    Category.SET: "Set",
}

# (file name, reference table, element holding the integer key)
REFERENCE_TEMPLATES = (
    ("Colors.xml", "colors", "color"),
    ("Sounds.xml", "sounds", "SoundId"),
    ("MapIcon_LootBeam.xml", "beams", "BeamId"),
)


class MalformedTemplateError(ValueError):
    """A single template document could not be read."""


def placeholder_pattern(category: Category) -> "re.Pattern":
    """Pattern matching a display name that carries nothing but an ID."""
    label = PLACEHOLDER_LABELS[category]
    return re.compile(rf'(?:{label}\s+)?ID:\s*(\d+)', re.IGNORECASE)


def _strip_namespaces(root: etree._Element) -> None:
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.startswith("{"):
            element.tag = etree.QName(element).localname


def load_filter_rules(path: Path) -> List[etree._Element]:
    """Load the ``ItemFilter/rules/Rule`` elements of a template.

    Raises:
        MalformedTemplateError: If the file is unreadable or not a filter document
    """
    parser = etree.XMLParser(remove_comments=True, resolve_entities=False, no_network=True)
    try:
        tree = etree.parse(str(path), parser)
    except (etree.XMLSyntaxError, OSError) as e:
        raise MalformedTemplateError(f"{path.name}: {e}") from e

    root = tree.getroot()
    _strip_namespaces(root)
    if root.tag != "ItemFilter" or root.find("rules") is None:
        raise MalformedTemplateError(f"{path.name}: missing ItemFilter/rules")
    return root.findall("rules/Rule")


def rule_text(rule: etree._Element, path: str) -> Optional[str]:
    element = rule.find(path)
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def condition_ids(rule: etree._Element, category: Category) -> List[int]:
    """All integer IDs in the rule's first condition for the category's shape."""
    condition = rule.find("conditions/Condition")
    if condition is None:
        return []
    if category is Category.AFFIX:
        values = condition.findall("affixes/int")
    else:
        values = condition.findall("Uniques/UniqueId")
    ids = []
    for value in values:
        try:
            ids.append(int((value.text or "").strip()))
        except ValueError:
            continue
    return ids


class TemplateIngestor:
    """Registers placeholder and filled slots from the template directories."""

    def __init__(self):
        self.logger = structlog.get_logger(__name__)

    def run(self, ctx: BuildContext) -> None:
        """Ingest reference tables and all category templates.

        Raises:
            TemplateError: If the template root directory is missing
        """
        root = ctx.paths.templates_dir
        if not root.is_dir():
            raise TemplateError(f"Template directory not found: {root}")

        self._ingest_reference_tables(ctx, root)

        for category in TEMPLATE_CATEGORIES:
            directory = root / category.value
            if not directory.is_dir():
                ctx.warn("Template directory not found - skipping", category, path=str(directory))
                continue
            for path in sorted(directory.glob("*.xml")):
                self.ingest_file(ctx, category, path)

            store = ctx.dataset[category]
            ctx.info("Parsed templates", category,
                     slots=len(store), filled=len(store.named()), placeholders=len(store.placeholders()))

    def ingest_file(self, ctx: BuildContext, category: Category, path: Path) -> None:
        try:
            rules = load_filter_rules(path)
        except MalformedTemplateError as e:
            ctx.error("Malformed template skipped", category, file=path.name, error=str(e))
            ctx.stats.count("templates_failed")
            return

        ctx.template_count += 1
        pattern = placeholder_pattern(category)
        for rule in rules:
            self._register_rule(ctx, category, rule, pattern, path.name)

    def _register_rule(self, ctx: BuildContext, category: Category, rule, pattern, file_name: str) -> None:
        label = rule_text(rule, "nameOverride")
        if label is None:
            return

        store = ctx.dataset[category]
        match = pattern.fullmatch(label)
        if match:
            entity_id = int(match.group(1))
            if entity_id in store:
                ctx.warn("Duplicate template ID", category, id=entity_id, file=file_name)
                ctx.stats.count("duplicate_template_ids")
            else:
                store.declare(Entity(id=entity_id))
            return

        ids = condition_ids(rule, category)
        if not ids:
            self.logger.debug("Rule has no ID condition", category=category.value, rule=label, file=file_name)
            return

        entity_id = ids[0]
        existing = store.get(entity_id)
        if existing is not None and not existing.is_placeholder:
            ctx.warn("Duplicate template ID", category, id=entity_id, file=file_name,
                     kept=existing.name, ignored=label)
            ctx.stats.count("duplicate_template_ids")
            return

        store.declare(Entity(id=entity_id, name=label))
        self.logger.debug("Discovered template entity", category=category.value, id=entity_id, name=label)

    def _ingest_reference_tables(self, ctx: BuildContext, root: Path) -> None:
        for file_name, table_name, key_element in REFERENCE_TEMPLATES:
            path = root / file_name
            if not path.exists():
                ctx.warn("Reference template not found - skipping", file=file_name)
                continue
            try:
                rules = load_filter_rules(path)
            except MalformedTemplateError as e:
                ctx.error("Malformed reference template skipped", file=file_name, error=str(e))
                continue

            ctx.template_count += 1
            table = ctx.dataset.reference_table(table_name)
            for rule in rules:
                name = rule_text(rule, "nameOverride")
                raw_id = rule_text(rule, key_element)
                if name is None or raw_id is None:
                    continue
                try:
                    table[int(raw_id)] = name
                except ValueError:
                    self.logger.debug("Non-numeric reference ID", file=file_name, value=raw_id)
            ctx.info("Parsed reference template", file=file_name, entries=len(table))
