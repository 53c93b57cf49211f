"""Tests for the scraped document parsers."""
import json
import pytest

from conftest import AILMENT_DATA, MODERN_TIERS, MONSTER_DATA, affix_card, item_card, page
from epochdb_builder.core.models import Category, Namespace
from epochdb_builder.ingest.web import (
    AffixParser, AilmentParser, MonsterParser, SetItemParser, UniqueItemParser,
)
from epochdb_builder.ingest.web.base_parser import clean_text, lines_of, make_soup


class TestBaseHelpers:
    def test_clean_text(self):
        assert clean_text("  a \n\t b ") == "a b"
        assert clean_text(None) == ""

    def test_lines_split_at_breaks(self):
        element = make_soup('<div>Ring<br>Unique <a>Ruby Ring</a><br></div>').div
        assert lines_of(element) == ["Ring", "Unique Ruby Ring"]


class TestAffixParser:
    def test_cards_with_tiers_and_hints(self, mock_logger):
        parser = AffixParser(["idol", "minion"], mock_logger)
        records = parser.parse(page(
            affix_card("Added Health", "Adds flat health", MODERN_TIERS)
            + affix_card("Idol Minion Damage")
        ), affix_type="prefix")

        assert [r.name for r in records] == ["Added Health", "Idol Minion Damage"]
        health = records[0]
        assert health.description == "Adds flat health"
        assert health.attributes["affixType"] == "prefix"
        assert health.attributes["tiers"]["Tier"] == ["T1", "T2"]
        assert health.namespace_hint is Namespace.ITEM
        assert records[1].namespace_hint is Namespace.IDOL
        assert "tiers" not in records[1].attributes

    def test_nested_cards_are_not_duplicated(self, mock_logger):
        html = page('<div class="affix-card"><div class="affix-name">Outer</div>'
                    '<div class="item-card"><div class="item-name">Inner</div></div></div>')
        records = AffixParser(["idol"], mock_logger).parse(html)
        assert [r.name for r in records] == ["Outer"]

    def test_card_without_name_is_isolated(self, mock_logger):
        parser = AffixParser(["idol"], mock_logger)
        records = parser.parse(page('<div class="affix-card"><p>?</p></div>' + affix_card("Armor")))

        assert [r.name for r in records] == ["Armor"]
        assert parser.failures == [("#1", "affix card has no name")]


class TestUniqueItemParser:
    def test_card_fields(self, mock_logger):
        drop = ('<ul class="dropped-from"><li><span class="random-drop">Random drop</span>'
                '<span class="drop-chance">Very rare (0.1%)</span></li></ul>')
        html = page(
            item_card("Inferno Ring", lore="Forged in flame.", extra=drop
                      + '<div class="item-req2">Requires Class: Mage</div>')
            + item_card("Set Piece", extra_class="item-itemset")
        )
        records = UniqueItemParser(mock_logger).parse(html)

        assert len(records) == 1
        ring = records[0]
        assert ring.name == "Inferno Ring"
        assert ring.description == "Forged in flame."
        assert ring.attributes == {
            "baseType": "Ruby Ring",
            "category": "Ring",
            "levelRequirement": 20,
            "classRequirement": "Mage",
            "implicits": ["+10% Fire Resistance"],
            "modifiers": ["+25% Fire Damage"],
            "dropRarity": "Very rare",
        }

    def test_base_type_without_link(self, mock_logger):
        html = page('<div class="item-card"><div class="item-name">Plain</div>'
                    '<div class="item-type">Helmet<br>Unique Iron Helm</div></div>')
        record = UniqueItemParser(mock_logger).parse(html)[0]
        assert record.attributes["baseType"] == "Iron Helm"
        assert record.attributes["levelRequirement"] == 1
        assert "dropRarity" not in record.attributes


class TestSetItemParser:
    def test_only_set_cards(self, mock_logger):
        html = page(
            item_card("Inferno Ring")
            + item_card("Ravager's Mantle", extra_class="item-itemset",
                        extra='<div class="item-set-info"><span class="item-set-name">Ravager\'s Garb</span></div>'
                              '<div class="item-set-bonus">2 Set: +20 Health</div>')
        )
        records = SetItemParser(mock_logger).parse(html)

        assert [r.name for r in records] == ["Ravager's Mantle"]
        assert records[0].attributes["setName"] == "Ravager's Garb"
        assert records[0].attributes["setBonuses"] == ["2 Set: +20 Health"]
        assert records[0].attributes["baseType"] == "Ruby Ring"


class TestAilmentParser:
    def test_ailment_fields(self, mock_logger):
        parser = AilmentParser(mock_logger)
        records = parser.parse(json.dumps(AILMENT_DATA))

        assert len(records) == 1
        ignite = records[0]
        assert ignite.key == "ignite"
        assert ignite.description == "Burns the target."
        assert ignite.attributes == {
            "type": "Damage over time",
            "category": "negative",
            "duration": "2.5s",
            "maxStacks": "Unlimited",
            "effects": ["40 fire damage per second"],
            "tags": ["Fire", "DoT"],
        }
        assert parser.tags == {"Fire", "DoT"}

    def test_document_without_items(self, mock_logger):
        with pytest.raises(ValueError, match="no items"):
            AilmentParser(mock_logger).parse(json.dumps({"entries": []}))


class TestMonsterParser:
    def test_monster_fields(self, mock_logger):
        parser = MonsterParser(mock_logger)
        record = parser.parse(json.dumps(MONSTER_DATA))[0]

        assert record.key == "skeleton_warrior"
        assert record.description == "Rattling bones."
        assert record.attributes["type"] == "Undead"
        assert record.attributes["health"] == 120
        assert record.attributes["threat"] == "Low"
        assert record.attributes["stats"] == ["+10 Armor"]
        assert record.attributes["scalingTags"] == ["Minion"]
        assert "scaling" not in record.attributes


class TestParserLoading:
    def test_missing_source_contributes_nothing(self, build_context):
        records = UniqueItemParser().load(build_context)
        assert records == []
        assert build_context.stats.warnings == []

    def test_unparseable_document_degrades_to_warning(self, build_context):
        (build_context.paths.web_data_dir / "Ailments.json").write_text("{not json", encoding="utf-8")

        records = AilmentParser().load(build_context)

        assert records == []
        assert build_context.stats.counters["web_sources_failed"] == 1
        assert build_context.stats.warnings[0].category is Category.AILMENT

    def test_bad_card_warns_once_and_keeps_the_rest(self, build_context):
        (build_context.paths.web_data_dir / "Prefixes.html").write_text(
            page('<div class="affix-card"></div>' + affix_card("Armor")), encoding="utf-8")

        records = AffixParser(["idol"]).load(build_context)

        assert [r.name for r in records] == ["Armor"]
        assert records[0].source == "Prefixes.html"
        assert build_context.stats.counters["cards_failed"] == 1
        assert len(build_context.stats.warnings) == 1

    def test_tags_reach_the_dataset(self, build_context):
        (build_context.paths.web_data_dir / "Ailments.json").write_text(json.dumps(AILMENT_DATA), encoding="utf-8")
        AilmentParser().load(build_context)
        assert build_context.dataset.global_tags == {"Fire", "DoT"}
