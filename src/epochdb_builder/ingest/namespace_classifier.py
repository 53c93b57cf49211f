"""Idol vs item classification for affixes."""
from typing import Iterable, Optional, Set

import structlog

from epochdb_builder import TemplateError
from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category, Namespace
from epochdb_builder.ingest.template_ingestor import (
    MalformedTemplateError, condition_ids, load_filter_rules, rule_text,
)


MASTER_TEMPLATE = "MasterTemplate1.xml"
IDOL_RULE = "All Affixes for Idols"
ITEM_RULE = "All Affixes for Items"


def keyword_namespace(name: Optional[str], keywords: Iterable[str]) -> Optional[Namespace]:
    """Guess a namespace from the affix name; None without a name."""
    if not name:
        return None
    lowered = name.lower()
    if any(keyword in lowered for keyword in keywords):
        return Namespace.IDOL
    return Namespace.ITEM


class NamespaceClassifier:
    """Authoritative ID sets first, keyword heuristic strictly as fallback."""

    def __init__(self, idol_ids: Set[int], item_ids: Set[int], keywords: Iterable[str],
                 logger: Optional[structlog.BoundLogger] = None):
        self.idol_ids = set(idol_ids)
        self.item_ids = set(item_ids)
        self.keywords = [k.lower() for k in keywords]
        self.logger = logger or structlog.get_logger(__name__)
        self.fallbacks = 0

    @classmethod
    def from_master_template(cls, ctx: BuildContext) -> "NamespaceClassifier":
        """Load the two aggregate ID lists from the master template.

        A missing master template puts classification in degraded mode.

        Raises:
            TemplateError: If the master template exists but cannot be parsed
        """
        keywords = ctx.config.classification.idol_keywords
        path = ctx.paths.templates_dir / MASTER_TEMPLATE
        if not path.exists():
            ctx.namespace_degraded = True
            ctx.warn("Master template not found - affix classification falls back to keywords",
                     Category.AFFIX, file=MASTER_TEMPLATE)
            return cls(set(), set(), keywords)

        try:
            rules = load_filter_rules(path)
        except MalformedTemplateError as e:
            raise TemplateError(f"Master template is unreadable: {e}") from e

        idol_ids: Set[int] = set()
        item_ids: Set[int] = set()
        for rule in rules:
            label = rule_text(rule, "nameOverride")
            if label == IDOL_RULE:
                idol_ids.update(condition_ids(rule, Category.AFFIX))
            elif label == ITEM_RULE:
                item_ids.update(condition_ids(rule, Category.AFFIX))

        if not idol_ids and not item_ids:
            ctx.namespace_degraded = True
            ctx.warn("Master template lists no affix IDs - classification falls back to keywords",
                     Category.AFFIX, file=MASTER_TEMPLATE)

        ctx.dataset.idol_affix_ids = idol_ids
        ctx.dataset.item_affix_ids = item_ids
        ctx.info("Loaded affix namespaces", Category.AFFIX, idol_ids=len(idol_ids), item_ids=len(item_ids))
        return cls(idol_ids, item_ids, keywords)

    def authoritative(self, affix_id: int) -> Optional[Namespace]:
        if affix_id in self.idol_ids:
            return Namespace.IDOL
        if affix_id in self.item_ids:
            return Namespace.ITEM
        return None

    def classify(self, affix_id: Optional[int], name: Optional[str]) -> Optional[Namespace]:
        """Namespace for an affix, or None when neither source can decide."""
        if affix_id is not None:
            namespace = self.authoritative(affix_id)
            if namespace is not None:
                return namespace

        namespace = keyword_namespace(name, self.keywords)
        if namespace is not None:
            self.fallbacks += 1
            self.logger.debug("Keyword namespace fallback", id=affix_id, name=name, namespace=namespace.value)
        return namespace

    def run(self, ctx: BuildContext) -> None:
        """Assign a namespace to every affix slot."""
        before = self.fallbacks
        unclassified = []
        for entity in ctx.dataset[Category.AFFIX]:
            entity.namespace = self.classify(entity.id, entity.name)
            if entity.namespace is None:
                unclassified.append(entity.id)

        fallbacks = self.fallbacks - before
        ctx.stats.count("namespace_fallbacks", fallbacks)
        ctx.stats.count("unclassified_affixes", len(unclassified))
        if fallbacks:
            ctx.info("Classified affixes by keyword fallback", Category.AFFIX, count=fallbacks)
        ctx.info("Classified affix slots", Category.AFFIX,
                 total=len(ctx.dataset[Category.AFFIX]), unclassified=len(unclassified))
