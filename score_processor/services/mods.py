"""Mod mapping: ruleset mods -> legacy mod bitmask for attribute lookups.

Stored difficulty attributes are keyed by the legacy (stable) mod bitmask.
Modern mods are identified by acronym, so before looking attributes up we:

1. Convert acronyms to legacy bits using the ruleset's conversion table.
2. Apply approximations for mods with no legacy bit but a known
   difficulty-equivalent one (LEGACY_MOD_APPROXIMATIONS).
3. Mask down to the bits that change difficulty for the ruleset, taking into
   account whether the beatmap is being played as a convert.

The resulting value is only a lookup key. It carries no gameplay meaning.
"""

from collections.abc import Iterable
from enum import IntFlag

from score_processor.schemas.score_item import APIMod

RULESET_OSU = 0
RULESET_TAIKO = 1
RULESET_CATCH = 2
RULESET_MANIA = 3


class LegacyMods(IntFlag):
    """Stable mod bits, as stored in difficulty attribute rows."""

    NONE = 0
    NO_FAIL = 1 << 0
    EASY = 1 << 1
    TOUCH_DEVICE = 1 << 2
    HIDDEN = 1 << 3
    HARD_ROCK = 1 << 4
    SUDDEN_DEATH = 1 << 5
    DOUBLE_TIME = 1 << 6
    RELAX = 1 << 7
    HALF_TIME = 1 << 8
    NIGHTCORE = 1 << 9
    FLASHLIGHT = 1 << 10
    AUTOPLAY = 1 << 11
    SPUN_OUT = 1 << 12
    AUTOPILOT = 1 << 13
    PERFECT = 1 << 14
    KEY4 = 1 << 15
    KEY5 = 1 << 16
    KEY6 = 1 << 17
    KEY7 = 1 << 18
    KEY8 = 1 << 19
    FADE_IN = 1 << 20
    RANDOM = 1 << 21
    CINEMA = 1 << 22
    TARGET = 1 << 23
    KEY9 = 1 << 24
    KEY_COOP = 1 << 25
    KEY1 = 1 << 26
    KEY3 = 1 << 27
    KEY2 = 1 << 28
    SCORE_V2 = 1 << 29
    MIRROR = 1 << 30


KEY_MODS = (
    LegacyMods.KEY1
    | LegacyMods.KEY2
    | LegacyMods.KEY3
    | LegacyMods.KEY4
    | LegacyMods.KEY5
    | LegacyMods.KEY6
    | LegacyMods.KEY7
    | LegacyMods.KEY8
    | LegacyMods.KEY9
    | LegacyMods.KEY_COOP
)

# Acronyms every ruleset shares
_COMMON_MODS: dict[str, LegacyMods] = {
    "NF": LegacyMods.NO_FAIL,
    "EZ": LegacyMods.EASY,
    "HD": LegacyMods.HIDDEN,
    "HR": LegacyMods.HARD_ROCK,
    "SD": LegacyMods.SUDDEN_DEATH,
    # Stable always stored PF together with SD, and NC together with DT.
    "PF": LegacyMods.SUDDEN_DEATH | LegacyMods.PERFECT,
    "DT": LegacyMods.DOUBLE_TIME,
    "NC": LegacyMods.DOUBLE_TIME | LegacyMods.NIGHTCORE,
    "HT": LegacyMods.HALF_TIME,
    "FL": LegacyMods.FLASHLIGHT,
    "AT": LegacyMods.AUTOPLAY,
    "CN": LegacyMods.CINEMA,
    "SV2": LegacyMods.SCORE_V2,
}

# Ruleset-provided converters (acronym -> legacy bits)
LEGACY_MOD_CONVERTERS: dict[int, dict[str, LegacyMods]] = {
    RULESET_OSU: {
        **_COMMON_MODS,
        "RX": LegacyMods.RELAX,
        "AP": LegacyMods.AUTOPILOT,
        "SO": LegacyMods.SPUN_OUT,
        "TD": LegacyMods.TOUCH_DEVICE,
        "TP": LegacyMods.TARGET,
    },
    RULESET_TAIKO: {
        **_COMMON_MODS,
        "RX": LegacyMods.RELAX,
        "RD": LegacyMods.RANDOM,
    },
    RULESET_CATCH: {
        **_COMMON_MODS,
        "RX": LegacyMods.RELAX,
    },
    RULESET_MANIA: {
        **_COMMON_MODS,
        "FI": LegacyMods.FADE_IN,
        "RD": LegacyMods.RANDOM,
        "MR": LegacyMods.MIRROR,
        "1K": LegacyMods.KEY1,
        "2K": LegacyMods.KEY2,
        "3K": LegacyMods.KEY3,
        "4K": LegacyMods.KEY4,
        "5K": LegacyMods.KEY5,
        "6K": LegacyMods.KEY6,
        "7K": LegacyMods.KEY7,
        "8K": LegacyMods.KEY8,
        "9K": LegacyMods.KEY9,
        "DS": LegacyMods.KEY_COOP,
    },
}

# Mods with no legacy bit, approximated by a difficulty-equivalent one.
LEGACY_MOD_APPROXIMATIONS: dict[str, LegacyMods] = {
    "DC": LegacyMods.HALF_TIME,  # Daycore: half time without pitch correction
}


def convert_to_legacy_mods(ruleset_id: int, mods: Iterable[APIMod]) -> LegacyMods:
    """Convert mods to legacy bits using the ruleset's converter table.

    Acronyms without a legacy representation contribute nothing.

    Raises:
        ValueError: If the ruleset has no converter.
    """
    try:
        converter = LEGACY_MOD_CONVERTERS[ruleset_id]
    except KeyError:
        raise ValueError(f"No legacy mod converter for ruleset {ruleset_id}") from None

    value = LegacyMods.NONE
    for mod in mods:
        value |= converter.get(mod.acronym.upper(), LegacyMods.NONE)
    return value


def apply_legacy_approximations(legacy_mods: LegacyMods, mods: Iterable[APIMod]) -> LegacyMods:
    """OR in the approximation bits for mods listed in LEGACY_MOD_APPROXIMATIONS."""
    for mod in mods:
        legacy_mods |= LEGACY_MOD_APPROXIMATIONS.get(mod.acronym.upper(), LegacyMods.NONE)
    return legacy_mods


def mask_relevant_mods(mods: LegacyMods, is_convert: bool, ruleset_id: int) -> LegacyMods:
    """Keep only the bits that affect difficulty for the given ruleset.

    Args:
        mods: Legacy mod bits of the score.
        is_convert: Whether the score's ruleset differs from the beatmap's.
        ruleset_id: The score's ruleset.
    """
    relevant = LegacyMods.DOUBLE_TIME | LegacyMods.HALF_TIME | LegacyMods.HARD_ROCK | LegacyMods.EASY

    if ruleset_id == RULESET_OSU:
        relevant |= LegacyMods.FLASHLIGHT | LegacyMods.TOUCH_DEVICE
        # Hidden only changes difficulty in combination with flashlight.
        if mods & LegacyMods.FLASHLIGHT:
            relevant |= LegacyMods.HIDDEN
    elif ruleset_id == RULESET_MANIA:
        # Key count is a property of the beatmap unless it is a convert.
        if is_convert:
            relevant |= KEY_MODS

    return mods & relevant


def get_legacy_mods_for_attribute_lookup(
    beatmap_ruleset_id: int,
    ruleset_id: int,
    mods: Iterable[APIMod],
) -> LegacyMods:
    """Choose the legacy mod value used to look up stored difficulty attributes.

    The match is not always exact: mods that award pp but do not exist in
    stable are approximated (see LEGACY_MOD_APPROXIMATIONS).

    Example:
        >>> get_legacy_mods_for_attribute_lookup(0, 0, [APIMod(acronym="DC")])
        <LegacyMods.HALF_TIME: 256>
    """
    mods = list(mods)
    legacy_mods = convert_to_legacy_mods(ruleset_id, mods)
    legacy_mods = apply_legacy_approximations(legacy_mods, mods)
    return mask_relevant_mods(legacy_mods, ruleset_id != beatmap_ruleset_id, ruleset_id)
