from dataclasses import dataclass, field
from typing import List

from taleforge.domain.models.character import CharacterClass, Race
from taleforge.domain.models.enemy import Enemy
from taleforge.domain.models.item import Armour, Item, Shield, StatType, Weapon


@dataclass
class SeedCatalog:
    races: List[Race] = field(default_factory=list)
    classes: List[CharacterClass] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)
    weapons: List[Weapon] = field(default_factory=list)
    armours: List[Armour] = field(default_factory=list)
    shields: List[Shield] = field(default_factory=list)
    enemies: List[Enemy] = field(default_factory=list)


_RACES = (
    ("Human", 50, 10, 10),
    ("Elf", 40, 12, 8),
    ("Dwarf", 60, 8, 12),
)

_CLASSES = (
    ("Warrior", 50, 10, 10),
    ("Mage", 40, 15, 5),
    ("Rogue", 45, 12, 8),
)

# name, rarity, stat, value, description
_ITEMS = (
    ("Tainted Draught", -55, StatType.HEALTH, -20, "Smells wrong. Tastes worse."),
    ("Cracked Whetstone", -40, StatType.ATTACK, -4, "Dulls whatever it touches."),
    ("Rusted Charm", -25, StatType.DEFENSE, -3, "Its clasp bites into the skin."),
    ("Murky Tonic", -10, StatType.HEALTH, -5, "Probably not poison."),
    ("Herb Bundle", 8, StatType.HEALTH, 10, "Chewed leaves that knit small cuts."),
    ("Small Health Potion", 20, StatType.HEALTH, 25, "Restores a little health."),
    ("Sharpening Oil", 28, StatType.ATTACK, 4, "Makes the next blows bite deeper."),
    ("Iron Skin Salve", 35, StatType.DEFENSE, 4, "Hardens the skin for a while."),
    ("Health Potion", 45, StatType.HEALTH, 40, "Restores health."),
    ("Berserker Draught", 60, StatType.ATTACK, 8, "Rage in a bottle."),
    ("Stoneward Elixir", 70, StatType.DEFENSE, 8, "The body feels like granite."),
    ("Large Health Potion", 85, StatType.HEALTH, 70, "Restores a lot of health."),
    ("Phoenix Tear", 120, StatType.HEALTH, 120, "Said to mend any wound."),
    ("Starfire Phial", 300, StatType.ATTACK, 20, "Burns with a borrowed star."),
    ("Aegis Draught", 500, StatType.DEFENSE, 20, "A shield you drink."),
    ("Elixir of Ages", 700, StatType.HEALTH, 250, "Rarest of all remedies."),
)

_WEAPONS = (
    ("Bent Dagger", -30, -2, "More dangerous to its wielder."),
    ("Short Sword", 10, 4, "A basic short sword."),
    ("Hand Axe", 25, 6, "Reliable and heavy."),
    ("Long Bow", 40, 9, "A long-range bow."),
    ("War Hammer", 60, 12, "Crushes armour and bone."),
    ("Staff of Fire", 85, 16, "A magical staff that shoots fire."),
    ("Runed Greatsword", 120, 22, "Old runes flare along the blade."),
    ("Stormcaller", 300, 30, "Thunder follows every swing."),
    ("Dawnbreaker", 500, 38, "Light pours from its edge."),
    ("Worldsplitter", 700, 48, "It should not exist."),
)

_ARMOURS = (
    ("Moth-eaten Cloak", -30, 0, "Keeps nothing out."),
    ("Leather Armour", 10, 10, "Basic leather armour."),
    ("Studded Jerkin", 30, 18, "Leather with iron studs."),
    ("Chainmail", 50, 28, "Sturdy chainmail armour."),
    ("Plate Armour", 80, 40, "Heavy plate armour."),
    ("Wyrmscale Mail", 120, 55, "Scales from a fallen wyrm."),
    ("Celestial Plate", 300, 75, "Forged under a comet."),
    ("Bulwark of Kings", 500, 95, "Worn by the first kings."),
    ("Mantle of Eternity", 700, 120, "Time slides off it."),
)

_SHIELDS = (
    ("Splintered Board", -30, 0, "Barely a shield."),
    ("Wooden Shield", 10, 3, "A basic wooden shield."),
    ("Buckler", 30, 5, "Small and quick."),
    ("Iron Shield", 50, 8, "A sturdy iron shield."),
    ("Tower Shield", 80, 12, "A wall you can carry."),
    ("Dragon Shield", 120, 16, "A shield made from dragon scales."),
    ("Mirror Ward", 300, 22, "Turns spells back on their casters."),
    ("Oathkeeper", 500, 28, "Never once broken."),
    ("Aegis of Dawn", 700, 35, "The sun itself stands behind it."),
)

# name, difficulty, health, attack, defense
_ENEMIES = (
    ("Giant Rat", 1, 12, 4, 1),
    ("Goblin", 8, 30, 6, 2),
    ("Skeleton", 16, 40, 9, 4),
    ("Wolf", 24, 45, 11, 4),
    ("Orc", 34, 60, 13, 6),
    ("Giant Spider", 44, 70, 15, 7),
    ("Troll", 56, 95, 18, 9),
    ("Wraith", 68, 90, 21, 11),
    ("Ogre", 80, 130, 24, 12),
    ("Wyvern", 95, 150, 28, 14),
    ("Lich Acolyte", 110, 160, 32, 16),
    ("Ancient Golem", 300, 260, 36, 24),
    ("Shadow Hydra", 500, 340, 42, 26),
    ("Void Herald", 700, 420, 48, 30),
    ("Dragon", 1000, 600, 55, 32),
)


def build_seed_catalog() -> SeedCatalog:
    return SeedCatalog(
        races=[
            Race(id=index, name=name, vitality=hp, attack=atk, defense=dfn, sprite_path=f"sprites/race_{index}.png")
            for index, (name, hp, atk, dfn) in enumerate(_RACES, start=1)
        ],
        classes=[
            CharacterClass(id=index, name=name, vitality=hp, attack=atk, defense=dfn, sprite_path=f"sprites/class_{index}.png")
            for index, (name, hp, atk, dfn) in enumerate(_CLASSES, start=1)
        ],
        items=[
            Item(id=index, name=name, rarity=rarity, stat_modified=stat, stat_value=value, description=text)
            for index, (name, rarity, stat, value, text) in enumerate(_ITEMS, start=1)
        ],
        weapons=[
            Weapon(id=index, name=name, rarity=rarity, attack=bonus, description=text)
            for index, (name, rarity, bonus, text) in enumerate(_WEAPONS, start=1)
        ],
        armours=[
            Armour(id=index, name=name, rarity=rarity, health=bonus, description=text)
            for index, (name, rarity, bonus, text) in enumerate(_ARMOURS, start=1)
        ],
        shields=[
            Shield(id=index, name=name, rarity=rarity, defense=bonus, description=text)
            for index, (name, rarity, bonus, text) in enumerate(_SHIELDS, start=1)
        ],
        enemies=[
            Enemy(id=index, name=name, difficulty=difficulty, health=hp, attack=atk, defense=dfn)
            for index, (name, difficulty, hp, atk, dfn) in enumerate(_ENEMIES, start=1)
        ],
    )
