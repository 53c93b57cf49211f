"""Pytest configuration and shared fixtures for EpochDB Builder tests."""

import json
import pytest
import sys
from pathlib import Path
from unittest.mock import Mock
import yaml

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.config_manager import AppConfig, PathsConfig


XML_HEADER = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    '<ItemFilter xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
    'xmlns:xsd="http://www.w3.org/2001/XMLSchema">\n'
    '  <name>Test Filter</name>\n'
    '  <rules>\n'
)
XML_FOOTER = '  </rules>\n</ItemFilter>\n'


def filter_xml(*rules: str) -> str:
    """Wrap rule fragments in a loot filter document."""
    return XML_HEADER + "".join(rules) + XML_FOOTER


def affix_rule(name: str, *ids: int) -> str:
    values = "".join(f"<int>{i}</int>" for i in ids)
    return (
        '    <Rule>\n'
        '      <conditions><Condition xsi:type="AffixCondition">'
        f'<affixes>{values}</affixes></Condition></conditions>\n'
        f'      <nameOverride>{name}</nameOverride>\n'
        '    </Rule>\n'
    )


def unique_rule(name: str, *ids: int) -> str:
    values = "".join(f"<UniqueId>{i}</UniqueId>" for i in ids)
    return (
        '    <Rule>\n'
        '      <conditions><Condition xsi:type="UniqueModifiersCondition">'
        f'<Uniques>{values}</Uniques></Condition></conditions>\n'
        f'      <nameOverride>{name}</nameOverride>\n'
        '    </Rule>\n'
    )


def reference_rule(key_element: str, key: int, name: str) -> str:
    return f'    <Rule><{key_element}>{key}</{key_element}><nameOverride>{name}</nameOverride></Rule>\n'


def affix_card(name: str, description: str = "", tiers: str = "") -> str:
    return (
        '<div class="affix-card">'
        f'<div class="affix-name">{name}</div>'
        f'<div class="affix-description">{description}</div>'
        f'{tiers}</div>\n'
    )


def item_card(name: str, category: str = "Ring", base_type: str = "Ruby Ring", level: int = 20,
              lore: str = "", extra_class: str = "", extra: str = "") -> str:
    return (
        f'<div class="item-card {extra_class}">'
        f'<div class="item-name">{name}</div>'
        f'<div class="item-type">{category}<br>Unique <a href="#">{base_type}</a></div>'
        f'<div class="item-req">Requires Level: {level}</div>'
        '<div class="implicits-title">Implicits</div>'
        '<div class="item-mod-unique">+10% Fire Resistance</div>'
        '<div class="modifiers-title">Modifiers</div>'
        '<div class="item-mod-unique">+25% Fire Damage</div>'
        f'{extra}'
        f'<div class="item-lore">{lore}</div>'
        '</div>\n'
    )


def page(body: str) -> str:
    return f"<html><body>{body}</body></html>\n"


MODERN_TIERS = (
    '<div class="tier-table">'
    '<div class="tier-header"><div class="affix-tier-range">Health<br><span class="mod-type">flat</span></div></div>'
    '<div class="affix" tier="1"><div class="affix-tier-name">T1</div>'
    '<div class="affix-tier-range"><span class="mod-value">10</span><span class="mod-value">15</span></div></div>'
    '<div class="affix" tier="2"><div class="affix-tier-name">T2</div>'
    '<div class="affix-tier-range"><span class="mod-value">16</span><span class="mod-value">24</span></div></div>'
    '</div>'
)

SKILL_OVERVIEW = page(
    '<div class="navigation-panel-inner">'
    '<div class="marker-header"><div class="marker-item" category="mage">Mage</div></div>'
    '<div class="marker-header"><div class="marker-item" category="misc">Miscellaneous</div></div>'
    '<div class="nav-block" category="mage">'
    '<a class="section-item nav-item"><span class="marker-item">Fireball</span></a>'
    '<a class="section-item nav-item"><span class="marker-item">Passive Tree</span></a>'
    '</div>'
    '<div class="nav-block" category="misc">'
    '<a class="section-item nav-item"><span class="marker-item">Portal</span></a>'
    '</div>'
    '</div>'
)

SKILL_DATA = {
    "items": [
        {"navText": "Changelog"},
        {
            "navText": "Fireball",
            "description": "Hurls a ball of fire.",
            "rawHtml": (
                '<div>Mana Cost: <span><b>8</b></span></div>'
                '<div>Cooldown: <span><b>2s</b></span></div>'
                '<div>Critical Chance: <span>5%</span></div>'
                '<div class="ability-params"><div class="ability-tags">'
                '<span class="ability-tag">Fire</span><span class="ability-tag">Spell</span>'
                '</div></div>'
            ),
        },
    ]
}

AILMENT_DATA = {
    "items": [
        {"navText": "Changelog"},
        {
            "navText": "Ignite",
            "type": "Damage over time",
            "rawHtml": (
                '<div class="ailment-bitmap-container negative"></div>'
                '<div class="ailment-description">Burns the target.</div>'
                '<div>Duration: <span><b>2.5s</b></span></div>'
                '<div>Max stacks: <span>Unlimited</span></div>'
                '<div class="ailment-param-group"><div class="buff">40 fire damage per second</div></div>'
                '<div class="ailment-tags"><span class="ailment-tag">Fire</span>'
                '<span class="ailment-tag">DoT</span></div>'
            ),
        },
    ]
}

MONSTER_DATA = {
    "items": [
        {
            "navText": "Skeleton Warrior",
            "type": "Undead",
            "description": "Rattling bones.",
            "rawHtml": (
                '<div>Health: <span><b>120</b></span></div>'
                '<div>Threat: <span><b>Low</b></span></div>'
                '<div class="entity-params">Stats: <div class="buff">+10 Armor</div></div>'
                '<div class="entity-params">Scaling Tags: <span class="ability-tag">Minion</span></div>'
            ),
        },
    ]
}


def write_sample_sources(root: Path) -> Path:
    """Create templates, web data and overrides for a small but complete build.

    Affix slots: idol 5 and 6, item 7, 8 and 9; 8 is named "Added Health".
    Unique slots: 41 "Titan Heart" and placeholder 42. Set slot: placeholder 100.
    """
    templates = root / "TemplateFilters"
    (templates / "affixes").mkdir(parents=True)
    (templates / "uniques").mkdir()
    (templates / "sets").mkdir()

    (templates / "Colors.xml").write_text(filter_xml(
        reference_rule("color", 3, "Red"), reference_rule("color", 0, "White")), encoding="utf-8")
    (templates / "Sounds.xml").write_text(filter_xml(reference_rule("SoundId", 1, "Ding")), encoding="utf-8")
    (templates / "MapIcon_LootBeam.xml").write_text(
        filter_xml(reference_rule("BeamId", 2, "Gold Beam")), encoding="utf-8")
    (templates / "MasterTemplate1.xml").write_text(filter_xml(
        affix_rule("All Affixes for Idols", 5, 6),
        affix_rule("All Affixes for Items", 7, 8, 9),
    ), encoding="utf-8")
    (templates / "affixes" / "Affixes.xml").write_text(filter_xml(
        affix_rule("Affix ID: 7", 7),
        affix_rule("Added Health", 8),
        affix_rule("ID: 5", 5),
        affix_rule("Affix ID: 9", 9),
        affix_rule("Affix ID: 6", 6),
    ), encoding="utf-8")
    (templates / "uniques" / "Uniques.xml").write_text(filter_xml(
        unique_rule("Titan Heart", 41),
        unique_rule("Unique ID: 42", 42),
    ), encoding="utf-8")
    (templates / "sets" / "Sets.xml").write_text(filter_xml(unique_rule("Set ID: 100", 100)), encoding="utf-8")

    web = root / "WebData"
    web.mkdir()
    (web / "Prefixes.html").write_text(page(
        affix_card("Added Health", "Adds flat health", MODERN_TIERS)
        + affix_card("Increased Cast Speed", "Cast faster")
        + affix_card("Idol Minion Damage", "Minions deal more damage")
    ), encoding="utf-8")
    (web / "Suffixes.html").write_text(page(
        affix_card("Fire Resistance", "Resist fire")
        + affix_card("Cold Resistance", "Resist cold")
    ), encoding="utf-8")
    (web / "ItemList.html").write_text(page(
        item_card("Inferno Ring", lore="Forged in flame.")
        + item_card("Inferno Ring", lore="")
        + item_card("Titan Heart", category="Amulet", base_type="Stone Amulet", level=40, lore="Unyielding.")
    ), encoding="utf-8")
    (web / "Sets.html").write_text(page(
        item_card("Ravager's Mantle", category="Body Armour", base_type="Leather Tunic",
                  extra_class="item-itemset",
                  extra='<div class="item-set-info"><span class="item-set-name">Ravager\'s Garb</span></div>'
                        '<div class="item-set-bonus">2 Set: +20 Health</div>')
    ), encoding="utf-8")
    (web / "SkillOverview.html").write_text(SKILL_OVERVIEW, encoding="utf-8")
    (web / "SkillData.json").write_text(json.dumps(SKILL_DATA), encoding="utf-8")
    (web / "Ailments.json").write_text(json.dumps(AILMENT_DATA), encoding="utf-8")
    (web / "Monsters.json").write_text(json.dumps(MONSTER_DATA), encoding="utf-8")

    overrides = root / "Overrides"
    overrides.mkdir()
    (overrides / "affixes.json").write_text(json.dumps({
        "overrides": {"7": {"name": "Critical Strike Avoidance"}},
    }), encoding="utf-8")
    (overrides / "uniques.json").write_text(json.dumps({
        "corrections": {"41": {"correctedDescription": "A heart of stone.", "reason": "lore typo"}},
    }), encoding="utf-8")
    return root


def make_config(root: Path, **build) -> AppConfig:
    config = AppConfig(paths=PathsConfig(
        templates_dir=root / "TemplateFilters",
        web_data_dir=root / "WebData",
        overrides_dir=root / "Overrides",
        output_dir=root / "Data",
    ))
    for key, value in build.items():
        setattr(config.build, key, value)
    return config


@pytest.fixture(scope="session")
def logger():
    """Create a logger for testing."""
    import structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(__name__)


@pytest.fixture
def mock_logger():
    """Create a mock logger for unit tests."""
    return Mock()


@pytest.fixture
def sample_sources(tmp_path):
    """Project root with a complete set of build sources."""
    return write_sample_sources(tmp_path)


@pytest.fixture
def app_config(sample_sources):
    """Configuration pointing at the sample sources."""
    return make_config(sample_sources)


@pytest.fixture
def empty_config(tmp_path):
    """Configuration whose source directories exist but hold nothing."""
    for name in ("TemplateFilters", "WebData", "Overrides"):
        (tmp_path / name).mkdir()
    return make_config(tmp_path)


@pytest.fixture
def build_context(empty_config, mock_logger):
    """Fresh build context over empty sources."""
    return BuildContext(empty_config, logger=mock_logger)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        'app': {'name': 'EpochDB Builder'},
        'paths': {
            'templates_dir': 'TemplateFilters',
            'web_data_dir': 'WebData',
            'overrides_dir': 'Overrides',
            'output_dir': 'Data',
        },
        'build': {
            'game_version': '1.2.0',
            'sentinel_markers': ['???'],
            'summary_warning_limit': 5,
        },
        'classification': {'idol_keywords': ['idol', 'minion']},
        'logging': {'level': 'DEBUG'},
    }


@pytest.fixture
def config_file_path(tmp_path, sample_config_data):
    """Create a temporary config file for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_path = config_dir / "test_config.yaml"
    with open(config_path, 'w') as f:
        yaml.dump(sample_config_data, f)
    return config_path


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file location."""
    for item in items:
        if "unit" in str(item.path):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.path):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def suppress_logging():
    """Suppress logging during tests unless explicitly needed."""
    import logging
    logging.getLogger().setLevel(logging.WARNING)
    logging.getLogger('epochdb_builder').setLevel(logging.WARNING)
