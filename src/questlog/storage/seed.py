"""Reference data for the class feature catalog."""

from __future__ import annotations

from questlog.core.logging import get_logger
from questlog.models import CharacterClass, ClassFeature, FeatureType
from questlog.storage.repositories import ClassFeatureCatalog


logger = get_logger(__name__)

_ASI = ("Ability Score Improvement", "Increase ability scores or take a feat", FeatureType.IMPROVEMENT)

# (class, level, name, description, type) in catalog order
_FEATURE_ROWS: tuple[tuple[CharacterClass, int, str, str, FeatureType], ...] = (
    # Fighter
    (CharacterClass.FIGHTER, 1, "Fighting Style", "Choose a specialized combat technique", FeatureType.ABILITY),
    (CharacterClass.FIGHTER, 1, "Second Wind", "Regain hit points as a bonus action", FeatureType.ABILITY),
    (CharacterClass.FIGHTER, 2, "Action Surge", "Take an additional action on your turn", FeatureType.ABILITY),
    (CharacterClass.FIGHTER, 3, "Martial Archetype", "Choose your fighter specialization", FeatureType.ABILITY),
    (CharacterClass.FIGHTER, 4, *_ASI),
    # Wizard
    (CharacterClass.WIZARD, 1, "Spellcasting", "Cast wizard spells using spell slots", FeatureType.SPELL),
    (CharacterClass.WIZARD, 1, "Arcane Recovery", "Recover expended spell slots during a short rest", FeatureType.ABILITY),
    (CharacterClass.WIZARD, 2, "Arcane Tradition", "Choose your magical specialization", FeatureType.ABILITY),
    (CharacterClass.WIZARD, 4, *_ASI),
    # Rogue
    (CharacterClass.ROGUE, 1, "Expertise", "Double proficiency bonus for chosen skills", FeatureType.PROFICIENCY),
    (CharacterClass.ROGUE, 1, "Sneak Attack", "Deal extra damage when conditions are met", FeatureType.ABILITY),
    (CharacterClass.ROGUE, 1, "Thieves' Cant", "Secret language known by rogues", FeatureType.PROFICIENCY),
    (CharacterClass.ROGUE, 2, "Cunning Action", "Dash, Disengage, or Hide as bonus action", FeatureType.ABILITY),
    (CharacterClass.ROGUE, 3, "Roguish Archetype", "Choose your rogue specialization", FeatureType.ABILITY),
    # Cleric
    (CharacterClass.CLERIC, 1, "Spellcasting", "Cast cleric spells using spell slots", FeatureType.SPELL),
    (CharacterClass.CLERIC, 1, "Divine Domain", "Choose your divine specialization", FeatureType.ABILITY),
    (CharacterClass.CLERIC, 2, "Channel Divinity", "Harness divine energy for special effects", FeatureType.ABILITY),
    (CharacterClass.CLERIC, 4, *_ASI),
    # Barbarian
    (CharacterClass.BARBARIAN, 1, "Rage", "Enter a battle fury for bonus damage and resistance", FeatureType.ABILITY),
    (CharacterClass.BARBARIAN, 1, "Unarmored Defense", "Add Constitution to AC when unarmored", FeatureType.ABILITY),
    (CharacterClass.BARBARIAN, 2, "Reckless Attack", "Gain advantage on attacks at the cost of defense", FeatureType.ABILITY),
    (CharacterClass.BARBARIAN, 2, "Danger Sense", "Advantage on Dexterity saves against effects you can see", FeatureType.ABILITY),
    (CharacterClass.BARBARIAN, 3, "Primal Path", "Choose the source of your rage", FeatureType.ABILITY),
    (CharacterClass.BARBARIAN, 4, *_ASI),
    (CharacterClass.BARBARIAN, 5, "Extra Attack", "Attack twice when you take the Attack action", FeatureType.ABILITY),
    (CharacterClass.BARBARIAN, 5, "Fast Movement", "Speed increases while unarmored", FeatureType.ABILITY),
    # Bard
    (CharacterClass.BARD, 1, "Spellcasting", "Cast bard spells using spell slots", FeatureType.SPELL),
    (CharacterClass.BARD, 1, "Bardic Inspiration", "Grant an ally a bonus die", FeatureType.ABILITY),
    (CharacterClass.BARD, 2, "Jack of All Trades", "Add half proficiency to unproficient checks", FeatureType.PROFICIENCY),
    (CharacterClass.BARD, 2, "Song of Rest", "Allies regain extra hit points on a short rest", FeatureType.ABILITY),
    (CharacterClass.BARD, 3, "Bard College", "Choose your bardic specialization", FeatureType.ABILITY),
    (CharacterClass.BARD, 3, "Expertise", "Double proficiency bonus for chosen skills", FeatureType.PROFICIENCY),
    (CharacterClass.BARD, 4, *_ASI),
    (CharacterClass.BARD, 5, "Font of Inspiration", "Regain Bardic Inspiration on a short rest", FeatureType.ABILITY),
    # Druid
    (CharacterClass.DRUID, 1, "Druidic", "Secret language known by druids", FeatureType.PROFICIENCY),
    (CharacterClass.DRUID, 1, "Spellcasting", "Cast druid spells using spell slots", FeatureType.SPELL),
    (CharacterClass.DRUID, 2, "Wild Shape", "Assume the shape of a beast", FeatureType.ABILITY),
    (CharacterClass.DRUID, 2, "Druid Circle", "Choose your druidic specialization", FeatureType.ABILITY),
    (CharacterClass.DRUID, 4, *_ASI),
    # Monk
    (CharacterClass.MONK, 1, "Unarmored Defense", "Add Wisdom to AC when unarmored", FeatureType.ABILITY),
    (CharacterClass.MONK, 1, "Martial Arts", "Use Dexterity for unarmed strikes and monk weapons", FeatureType.ABILITY),
    (CharacterClass.MONK, 2, "Ki", "Spend ki points to fuel special techniques", FeatureType.ABILITY),
    (CharacterClass.MONK, 2, "Unarmored Movement", "Speed increases while unarmored", FeatureType.ABILITY),
    (CharacterClass.MONK, 3, "Monastic Tradition", "Choose your monastic specialization", FeatureType.ABILITY),
    (CharacterClass.MONK, 3, "Deflect Missiles", "Reduce damage from ranged weapon attacks", FeatureType.ABILITY),
    (CharacterClass.MONK, 4, *_ASI),
    (CharacterClass.MONK, 4, "Slow Fall", "Reduce falling damage", FeatureType.ABILITY),
    (CharacterClass.MONK, 5, "Extra Attack", "Attack twice when you take the Attack action", FeatureType.ABILITY),
    (CharacterClass.MONK, 5, "Stunning Strike", "Spend ki to stun a creature you hit", FeatureType.ABILITY),
    # Paladin
    (CharacterClass.PALADIN, 1, "Divine Sense", "Detect celestials, fiends and undead", FeatureType.ABILITY),
    (CharacterClass.PALADIN, 1, "Lay on Hands", "Heal from a pool of hit points", FeatureType.ABILITY),
    (CharacterClass.PALADIN, 2, "Fighting Style", "Choose a specialized combat technique", FeatureType.ABILITY),
    (CharacterClass.PALADIN, 2, "Spellcasting", "Cast paladin spells using spell slots", FeatureType.SPELL),
    (CharacterClass.PALADIN, 2, "Divine Smite", "Expend a spell slot for radiant damage", FeatureType.ABILITY),
    (CharacterClass.PALADIN, 3, "Divine Health", "Immunity to disease", FeatureType.ABILITY),
    (CharacterClass.PALADIN, 3, "Sacred Oath", "Swear the oath that binds you", FeatureType.ABILITY),
    (CharacterClass.PALADIN, 4, *_ASI),
    (CharacterClass.PALADIN, 5, "Extra Attack", "Attack twice when you take the Attack action", FeatureType.ABILITY),
    # Ranger
    (CharacterClass.RANGER, 1, "Favored Enemy", "Advantage tracking and recalling lore about chosen foes", FeatureType.ABILITY),
    (CharacterClass.RANGER, 1, "Natural Explorer", "Expertise in a favored terrain", FeatureType.ABILITY),
    (CharacterClass.RANGER, 2, "Fighting Style", "Choose a specialized combat technique", FeatureType.ABILITY),
    (CharacterClass.RANGER, 2, "Spellcasting", "Cast ranger spells using spell slots", FeatureType.SPELL),
    (CharacterClass.RANGER, 3, "Ranger Archetype", "Choose your ranger specialization", FeatureType.ABILITY),
    (CharacterClass.RANGER, 3, "Primeval Awareness", "Sense nearby creature types", FeatureType.ABILITY),
    (CharacterClass.RANGER, 4, *_ASI),
    (CharacterClass.RANGER, 5, "Extra Attack", "Attack twice when you take the Attack action", FeatureType.ABILITY),
    # Sorcerer
    (CharacterClass.SORCERER, 1, "Spellcasting", "Cast sorcerer spells using spell slots", FeatureType.SPELL),
    (CharacterClass.SORCERER, 1, "Sorcerous Origin", "Choose the source of your magic", FeatureType.ABILITY),
    (CharacterClass.SORCERER, 2, "Font of Magic", "Convert between sorcery points and spell slots", FeatureType.ABILITY),
    (CharacterClass.SORCERER, 3, "Metamagic", "Twist your spells to suit your needs", FeatureType.ABILITY),
    (CharacterClass.SORCERER, 4, *_ASI),
    # Warlock
    (CharacterClass.WARLOCK, 1, "Otherworldly Patron", "Strike a bargain with an otherworldly being", FeatureType.ABILITY),
    (CharacterClass.WARLOCK, 1, "Pact Magic", "Cast warlock spells using pact slots", FeatureType.SPELL),
    (CharacterClass.WARLOCK, 2, "Eldritch Invocations", "Learn fragments of forbidden knowledge", FeatureType.ABILITY),
    (CharacterClass.WARLOCK, 3, "Pact Boon", "Receive a gift from your patron", FeatureType.ABILITY),
    (CharacterClass.WARLOCK, 4, *_ASI),
)

DEFAULT_CLASS_FEATURES: tuple[ClassFeature, ...] = tuple(
    ClassFeature(
        class_name=class_name,
        level=level,
        feature_name=name,
        description=description,
        feature_type=feature_type,
    )
    for class_name, level, name, description, feature_type in _FEATURE_ROWS
)


def seed_class_features(
    catalog: ClassFeatureCatalog,
    features: tuple[ClassFeature, ...] = DEFAULT_CLASS_FEATURES,
) -> int:
    """Insert catalog entries, skipping any that already exist.

    Returns:
        Number of features actually inserted.
    """
    inserted = sum(1 for feature in features if catalog.add(feature))
    logger.info("class_features_seeded", inserted=inserted, total=len(features))
    return inserted


__all__ = ["DEFAULT_CLASS_FEATURES", "seed_class_features"]
