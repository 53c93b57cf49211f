"""Tests for web record reconciliation."""
from epochdb_builder.core.models import Category, Entity, Namespace, WebRecord
from epochdb_builder.reconcile.reconciliation_engine import ReconciliationEngine


def declare(ctx, category, *entities):
    for entity in entities:
        ctx.dataset[category].declare(entity)


def surplus_warnings(ctx):
    return [w for w in ctx.stats.warnings if w.event == "Surplus record, no template slot"]


class TestTemplateCategories:
    def test_name_match_enriches_in_place(self, build_context, mock_logger):
        declare(build_context, Category.UNIQUE, Entity(id=41, name="Titan Heart"), Entity(id=42))

        result = ReconciliationEngine(mock_logger).reconcile(build_context, Category.UNIQUE, [
            WebRecord(name="Titan Heart", description="Unyielding.", attributes={"baseType": "Stone Amulet"}),
        ])

        titan = build_context.dataset[Category.UNIQUE].get(41)
        assert titan.name == "Titan Heart"
        assert titan.description == "Unyielding."
        assert titan.attributes == {"baseType": "Stone Amulet"}
        assert build_context.dataset[Category.UNIQUE].get(42).is_placeholder
        assert (result.merged, result.filled, result.dropped) == (1, 0, 0)

    def test_placeholder_fill_then_merge(self, build_context, mock_logger):
        declare(build_context, Category.UNIQUE, Entity(id=42), Entity(id=50))

        ReconciliationEngine(mock_logger).reconcile(build_context, Category.UNIQUE, [
            WebRecord(name="Inferno Ring", description="Forged in flame.", attributes={"levelRequirement": 20}),
            WebRecord(name="Inferno Ring", attributes={"dropRarity": "Rare"}),
        ])

        store = build_context.dataset[Category.UNIQUE]
        ring = store.get(42)
        assert ring.name == "Inferno Ring"
        assert ring.description == "Forged in flame."
        assert ring.attributes == {"levelRequirement": 20, "dropRarity": "Rare"}
        assert store.get(50).is_placeholder
        assert len(store) == 2

    def test_placeholders_fill_in_ascending_id_order(self, build_context, mock_logger):
        declare(build_context, Category.SET, Entity(id=300), Entity(id=100), Entity(id=200))

        ReconciliationEngine(mock_logger).reconcile(build_context, Category.SET, [
            WebRecord(name="B"), WebRecord(name="A"),
        ])

        store = build_context.dataset[Category.SET]
        assert store.get(100).name == "B"
        assert store.get(200).name == "A"
        assert store.get(300).is_placeholder

    def test_surplus_is_dropped_with_one_warning(self, build_context, mock_logger):
        declare(build_context, Category.UNIQUE, Entity(id=42))

        result = ReconciliationEngine(mock_logger).reconcile(build_context, Category.UNIQUE, [
            WebRecord(name="Inferno Ring"), WebRecord(name="Frost Ring", source="ItemList.html"),
        ])

        assert result.dropped == 1
        warnings = surplus_warnings(build_context)
        assert len(warnings) == 1
        assert warnings[0].fields["name"] == "Frost Ring"
        assert [e.name for e in build_context.dataset[Category.UNIQUE]] == ["Inferno Ring"]
        assert build_context.stats.counters["surplus_dropped"] == 1

    def test_no_new_ids_are_created(self, build_context, mock_logger):
        declare(build_context, Category.UNIQUE, Entity(id=1, name="A"))
        records = [WebRecord(name=n) for n in ("A", "B", "C", "A")]

        ReconciliationEngine(mock_logger).reconcile(build_context, Category.UNIQUE, records)

        store = build_context.dataset[Category.UNIQUE]
        assert {e.id for e in store} == store.declared_ids == {1}


class TestAffixNamespaces:
    def test_hint_selects_placeholder_namespace(self, build_context, mock_logger):
        declare(build_context, Category.AFFIX,
                Entity(id=5, namespace=Namespace.IDOL),
                Entity(id=7, namespace=Namespace.ITEM),
                Entity(id=9))

        ReconciliationEngine(mock_logger).reconcile(build_context, Category.AFFIX, [
            WebRecord(name="Cast Speed", namespace_hint=Namespace.ITEM),
            WebRecord(name="Minion Damage", namespace_hint=Namespace.IDOL),
            WebRecord(name="Armor", namespace_hint=Namespace.ITEM),
            WebRecord(name="Health", namespace_hint=Namespace.ITEM),
        ])

        store = build_context.dataset[Category.AFFIX]
        assert store.get(7).name == "Cast Speed"
        assert store.get(5).name == "Minion Damage"
        assert store.get(9).name == "Armor"
        assert store.get(9).namespace is Namespace.ITEM
        assert [w.fields["name"] for w in surplus_warnings(build_context)] == ["Health"]

    def test_same_name_in_both_namespaces(self, build_context, mock_logger):
        declare(build_context, Category.AFFIX,
                Entity(id=2, name="Armor", namespace=Namespace.IDOL),
                Entity(id=3, name="Armor", namespace=Namespace.ITEM))

        ReconciliationEngine(mock_logger).reconcile(build_context, Category.AFFIX, [
            WebRecord(name="Armor", attributes={"affixType": "suffix"}, namespace_hint=Namespace.ITEM),
        ])

        store = build_context.dataset[Category.AFFIX]
        assert store.get(3).attributes == {"affixType": "suffix"}
        assert store.get(2).attributes == {}


class TestWebOnlyCategories:
    def test_records_are_keyed_by_slug(self, build_context, mock_logger):
        result = ReconciliationEngine(mock_logger).reconcile(build_context, Category.AILMENT, [
            WebRecord(name="Ignite", key="ignite", attributes={"tags": ["Fire"]}),
            WebRecord(name="Bleed"),
        ])

        store = build_context.dataset[Category.AILMENT]
        assert [e.id for e in store] == ["bleed", "ignite"]
        assert result.created == 2

    def test_duplicate_keys_merge_with_warning(self, build_context, mock_logger):
        ReconciliationEngine(mock_logger).reconcile(build_context, Category.MONSTER, [
            WebRecord(name="Skeleton", key="skeleton", attributes={"health": 10}),
            WebRecord(name="Skeleton", key="skeleton", description="Bones", attributes={"type": "Undead"}),
        ])

        skeleton = build_context.dataset[Category.MONSTER].get("skeleton")
        assert skeleton.attributes == {"health": 10, "type": "Undead"}
        assert skeleton.description == "Bones"
        assert [w.event for w in build_context.stats.warnings] == ["Duplicate web record merged"]

    def test_unusable_name_is_skipped(self, build_context, mock_logger):
        result = ReconciliationEngine(mock_logger).reconcile(build_context, Category.SKILL, [WebRecord(name="???")])
        assert result.dropped == 1
        assert len(build_context.dataset[Category.SKILL]) == 0
