import pytest

from score_processor.schemas.score_item import APIMod
from score_processor.services.mods import (
    KEY_MODS,
    LEGACY_MOD_APPROXIMATIONS,
    LegacyMods,
    convert_to_legacy_mods,
    get_legacy_mods_for_attribute_lookup,
    mask_relevant_mods,
)


def _mods(*acronyms: str) -> list[APIMod]:
    return [APIMod(acronym=a) for a in acronyms]


def test_convert_to_legacy_mods_combines_bits() -> None:
    value = convert_to_legacy_mods(0, _mods("HD", "HR", "DT"))
    assert value == LegacyMods.HIDDEN | LegacyMods.HARD_ROCK | LegacyMods.DOUBLE_TIME


def test_convert_to_legacy_mods_nightcore_implies_double_time() -> None:
    value = convert_to_legacy_mods(0, _mods("NC"))
    assert value & LegacyMods.DOUBLE_TIME
    assert value & LegacyMods.NIGHTCORE


def test_convert_to_legacy_mods_ignores_unknown_acronyms() -> None:
    assert convert_to_legacy_mods(0, _mods("XX", "DA")) == LegacyMods.NONE


def test_convert_to_legacy_mods_unknown_ruleset_raises() -> None:
    with pytest.raises(ValueError):
        convert_to_legacy_mods(7, _mods("HD"))


def test_approximation_table_is_explicit() -> None:
    assert LEGACY_MOD_APPROXIMATIONS == {"DC": LegacyMods.HALF_TIME}


def test_daycore_looks_up_half_time_attributes() -> None:
    assert get_legacy_mods_for_attribute_lookup(0, 0, _mods("DC")) == LegacyMods.HALF_TIME


def test_nightcore_looks_up_double_time_attributes() -> None:
    assert get_legacy_mods_for_attribute_lookup(0, 0, _mods("NC")) == LegacyMods.DOUBLE_TIME


def test_irrelevant_mods_are_masked_out() -> None:
    value = get_legacy_mods_for_attribute_lookup(0, 0, _mods("NF", "SD", "PF", "SO"))
    assert value == LegacyMods.NONE


def test_hidden_only_relevant_with_flashlight_in_osu() -> None:
    assert get_legacy_mods_for_attribute_lookup(0, 0, _mods("HD")) == LegacyMods.NONE
    assert get_legacy_mods_for_attribute_lookup(0, 0, _mods("HD", "FL")) == (
        LegacyMods.HIDDEN | LegacyMods.FLASHLIGHT
    )


def test_flashlight_not_relevant_outside_osu() -> None:
    assert get_legacy_mods_for_attribute_lookup(1, 1, _mods("FL", "HR")) == LegacyMods.HARD_ROCK


def test_mania_key_mods_only_relevant_for_converts() -> None:
    # Native mania beatmap: key count is fixed by the beatmap.
    assert get_legacy_mods_for_attribute_lookup(3, 3, _mods("4K")) == LegacyMods.NONE
    # osu! beatmap converted to mania.
    assert get_legacy_mods_for_attribute_lookup(0, 3, _mods("4K")) == LegacyMods.KEY4


def test_mania_dual_stages_maps_to_key_coop() -> None:
    assert get_legacy_mods_for_attribute_lookup(0, 3, _mods("DS")) == LegacyMods.KEY_COOP


def test_mania_constant_speed_has_no_legacy_bit() -> None:
    assert convert_to_legacy_mods(3, _mods("CS")) == LegacyMods.NONE
    assert get_legacy_mods_for_attribute_lookup(0, 3, _mods("CS")) == LegacyMods.NONE


def test_mask_relevant_mods_mania_convert_keeps_all_key_mods() -> None:
    assert mask_relevant_mods(KEY_MODS | LegacyMods.MIRROR, True, 3) == KEY_MODS
    assert mask_relevant_mods(KEY_MODS | LegacyMods.MIRROR, False, 3) == LegacyMods.NONE


@pytest.mark.parametrize(
    "mods",
    [
        ["DT", "HD", "FL"],
        ["DC", "HR"],
        ["EZ", "HT", "TD"],
    ],
)
def test_lookup_is_deterministic(mods: list[str]) -> None:
    first = get_legacy_mods_for_attribute_lookup(0, 0, _mods(*mods))
    second = get_legacy_mods_for_attribute_lookup(0, 0, _mods(*reversed(mods)))
    assert first == second
