"""Skills from the scraped skill overview page and its detail export."""
import json
import re
from typing import Dict, List, Optional

from bs4 import NavigableString, Tag

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category, WebRecord, slugify
from epochdb_builder.ingest.web.base_parser import (
    BaseWebParser, clean_text, make_soup, regex_value, text_of,
)


CLASS_SECTIONS = ("Primalist", "Mage", "Sentinel", "Acolyte", "Rogue")
SKIPPED_SKILLS = ("Passive Tree",)

# Skills per mastery; a skill matches when either name contains the other
MASTERY_SKILLS: Dict[str, Dict[str, List[str]]] = {
    "Primalist": {
        "Base Class": ["Evade", "Gathering Storm", "Fury Leap", "Summon Thorn Totem", "Swipe", "Tempest Strike",
                       "Maelstrom", "Upheaval", "Eterra's Blessing", "Warcry"],
        "Beastmaster": ["Summon Wolf", "Summon Storm Crows", "Serpent Strike", "Summon Bear", "Summon Scorpion",
                        "Summon Frenzy Totem", "Summon Sabertooth", "Summon Raptor"],
        "Shaman": ["Tornado", "Earthquake", "Avalanche", "Summon Storm Totem"],
        "Druid": ["Spriggan Form", "Summon Spriggan", "Swarmblade Form", "Entangling Roots", "Werebear Form"],
    },
    "Mage": {
        "Base Class": ["Evade", "Mana Strike", "Focus", "Flame Ward", "Teleport", "Enchant Weapon"],
        "Sorcerer": ["Fireball", "Meteor", "Nova", "Lightning Blast", "Static Orb", "Fire Runebolt", "Volcanic Orb"],
        "Runemaster": ["Runic Invocation", "Glyph of Dominion", "Static Spell", "Surge"],
        "Spellblade": ["Flame Reave", "Flame Rush", "Firebrand", "Shatter Strike", "Frost Claw"],
        "Other": ["Arcane Ascendance", "Black Hole", "Disintegrate", "Frost Wall", "Glacier", "Ice Barrage",
                  "Snap Freeze"],
    },
    "Sentinel": {
        "Base Class": ["Evade", "Lunge", "Healing Hands", "Rebuke", "Shield Bash", "Shield Rush", "Shield Throw"],
        "Paladin": ["Holy Aura", "Judgement", "Ring of Shields", "Sigils of Hope", "Smite"],
        "Forge Guard": ["Forge Strike", "Hammer Throw", "Manifest Armor", "Smelter's Wrath"],
        "Void Knight": ["Abyssal Echoes", "Anomaly", "Devouring Orb", "Erasing Strike", "Void Cleave",
                        "Volatile Reversal"],
        "Other": ["Javelin", "Multistrike", "Rive", "Vengeance", "Warpath"],
    },
    "Acolyte": {
        "Base Class": ["Evade", "Harvest", "Marrow Shards", "Sacrifice", "Transplant"],
        "Necromancer": ["Summon Skeleton", "Summon Mage", "Summon Bone Golem", "Bone Curse", "Assemble Abomination",
                        "Summon Volatile Zombie"],
        "Lich": ["Soul Feast", "Drain Life", "Death Seal", "Reaper Form", "Ghostflame"],
        "Warlock": ["Chaos Bolts", "Chthonic Fissure", "Infernal Shade", "Profane Veil"],
        "Other": ["Aura of Decay", "Dread Shade", "Flay", "Hungering Souls", "Rip Blood", "Spirit Plague",
                  "Summon Wraith", "Wandering Spirits"],
    },
    "Rogue": {
        "Base Class": ["Evade", "Puncture", "Shift", "Smoke Bomb", "Decoy"],
        "Bladedancer": ["Dancing Strikes", "Flurry", "Lethal Mirage", "Synchronized Strikes", "Umbral Blades"],
        "Marksman": ["Multishot", "Detonating Arrow", "Explosive Trap", "Hail of Arrows", "Net", "Summon Ballista"],
        "Falconer": ["Falconry", "Aerial Assault", "Dive Bomb"],
        "Other": ["Acid Flask", "Cinder Strike", "Dark Quiver", "Heartseeker", "Shadow Cascade", "Shurikens"],
    },
}

# rawHtml stat patterns: label followed by a value nested in two or one tags
NESTED_STATS = {
    "cooldown": "Cooldown",
    "baseSpeed": "Base Speed",
    "useDelay": "Use Delay",
    "useDuration": "Use Duration",
}
FLAT_STATS = {
    "criticalChance": "Critical Chance",
    "criticalMultiplier": "Critical Multiplier",
}


def mastery_for(class_name: str, skill_name: str) -> str:
    mapping = MASTERY_SKILLS.get(class_name)
    if not mapping:
        return f"{class_name} Skills"
    for mastery, skills in mapping.items():
        if any(mapped in skill_name or skill_name in mapped for mapped in skills):
            return mastery
    return "Other"


def marker_text(marker: Tag) -> str:
    """Skill name from a nav marker; icon markers join their text nodes."""
    if "with-icon" in (marker.get("class") or []):
        parts = [clean_text(str(s)) for s in marker.descendants if isinstance(s, NavigableString)]
        joined = " ".join(p for p in parts if p)
        if joined:
            return joined
    return text_of(marker)


def nested_stat(raw_html: str, label: str) -> Optional[str]:
    return regex_value(rf'{re.escape(label)}:\s*<[^>]*><[^>]*>([^<]+)</[^>]*></[^>]*>', raw_html)


def flat_stat(raw_html: str, label: str) -> Optional[str]:
    return regex_value(rf'{re.escape(label)}:\s*<[^>]*>([^<]+)</[^>]*>', raw_html)


def scaling_blocks(param: Tag) -> List[dict]:
    """Pairs each ``.attr-scaling`` header with the stat list that follows it."""
    scaling = []
    for section in param.select(".attr-scaling"):
        stats = section.find_next_sibling()
        if stats is not None and "attr-scaling-stats" in (stats.get("class") or []):
            scaling.append({
                "attribute": text_of(section),
                "effects": [text_of(li) for li in stats.select("li")],
            })
    return scaling


class SkillParser(BaseWebParser):
    """Builds skill records from navigation sections enriched with detail HTML."""

    category = Category.SKILL
    source_files = ("SkillOverview.html",)
    detail_file = "SkillData.json"

    def __init__(self, logger=None):
        super().__init__(logger)
        self.details: Dict[str, dict] = {}

    def load(self, ctx: BuildContext) -> List[WebRecord]:
        details_path = ctx.paths.web_data_dir / self.detail_file
        self.details = {}
        if details_path.exists():
            try:
                self.details = self.load_details(details_path.read_text(encoding="utf-8"))
            except (ValueError, OSError) as e:
                ctx.warn("Skill detail export unreadable - skills keep names only", self.category,
                         file=self.detail_file, error=str(e))
        return super().load(ctx)

    @staticmethod
    def load_details(document: str) -> Dict[str, dict]:
        data = json.loads(document)
        items = data.get("items", []) if isinstance(data, dict) else []
        details = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            name = clean_text(item.get("navText"))
            if name and name != "Changelog":
                details.setdefault(name, item)
        return details

    def parse(self, document: str, details: Optional[Dict[str, dict]] = None) -> List[WebRecord]:
        if details is not None:
            self.details = details

        soup = make_soup(document)
        panel = soup.select_one(".navigation-panel-inner")
        if panel is None:
            raise ValueError("navigation panel not found")

        blocks = {block.get("category"): block for block in panel.select(".nav-block")}
        records: List[WebRecord] = []
        for header in panel.select(".marker-header"):
            section = text_of(header)
            if not section:
                continue
            marker = header.select_one(".marker-item")
            block = blocks.get(marker.get("category")) if marker is not None else None
            if block is None:
                self.logger.warning("No skill block for section", section=section)
                continue

            links = [link for link in block.select(".section-item.nav-item")
                     if link.select_one(".marker-item") is not None]
            records.extend(self.collect(
                links,
                lambda link, section=section: self.parse_skill(section, link),
                lambda link, index, section=section: f"{section}/{marker_text(link.select_one('.marker-item'))}",
            ))
        return records

    def parse_skill(self, section: str, link: Tag) -> Optional[WebRecord]:
        name = marker_text(link.select_one(".marker-item"))
        if not name or name in SKIPPED_SKILLS:
            return None

        is_class = section in CLASS_SECTIONS
        attributes = {"section": section, "sectionType": "class" if is_class else "other"}
        if is_class:
            attributes["class"] = section
            attributes["mastery"] = mastery_for(section, name)

        description = ""
        detail = self.details.get(name)
        if detail:
            description = clean_text(detail.get("description"))
            attributes.update(self.parse_detail_html(detail.get("rawHtml") or ""))

        return WebRecord(name=name, description=description, attributes=attributes,
                         key=slugify(section, name))

    def parse_detail_html(self, raw_html: str) -> dict:
        data = {}
        if not raw_html:
            return data

        mana = regex_value(r'Mana Cost:\s*<[^>]*><[^>]*>(\d+)</[^>]*></[^>]*>', raw_html)
        if mana is not None:
            data["manaCost"] = int(mana)
        for key, label in NESTED_STATS.items():
            value = nested_stat(raw_html, label)
            if value is not None:
                data[key] = value
        for key, label in FLAT_STATS.items():
            value = flat_stat(raw_html, label)
            if value is not None:
                data[key] = value

        doc = make_soup(raw_html)
        for param in doc.select(".ability-params"):
            text = text_of(param)
            if "Base Damage:" in text:
                match = re.search(r'(\d+)\s+(\w+)', text.split("Base Damage:", 1)[1])
                if match:
                    data["baseDamage"] = {"amount": int(match.group(1)), "type": match.group(2)}
            if "Scaling:" in text:
                data["scaling"] = scaling_blocks(param)
            if "Summon:" in text:
                data["summon"] = self._summon(param, text)
            if "Combo skills:" in text:
                data["comboSkills"] = [text_of(a) for a in param.select(".ability-link")]
            if "Trigger on" in text:
                data["triggers"] = [text_of(a) for a in param.select(".ability-link")]
            if "Minion Tags:" in text:
                minion_tags = self.track_tags(text_of(t) for t in param.select(".ability-tag"))
                if minion_tags:
                    data["minionTags"] = minion_tags
            elif param.select_one(".ability-tags") is not None and "tags" not in data:
                tags = self.track_tags(text_of(t) for t in param.select(".ability-tag"))
                if tags:
                    data["tags"] = tags

        alt_text = text_of(doc.select_one(".ability-alt-text"))
        if alt_text:
            data["additionalInfo"] = alt_text
        source = text_of(doc.select_one(".ability-source-class"))
        if source:
            data["source"] = source
        return data

    @staticmethod
    def _summon(param: Tag, text: str) -> dict:
        summon = {}
        count = regex_value(r'(\d+) x', text)
        if count is not None:
            summon["count"] = int(count)
        entity = param.select_one(".entity-link")
        if entity is not None:
            summon["type"] = text_of(entity)
        limit = regex_value(r'Summon limit:\s*(\d+)', text)
        if limit is not None:
            summon["limit"] = int(limit)
        return summon
