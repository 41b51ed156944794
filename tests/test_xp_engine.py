from services.xp_engine import (
    LEVEL_THRESHOLDS,
    LEVEL_TITLES,
    MAX_LEVEL,
    calculate_level,
    next_level_title,
    xp_to_next_level,
)


def test_calculate_level_thresholds():
    assert calculate_level(0) == (1, "Newcomer")
    assert calculate_level(49) == (1, "Newcomer")
    assert calculate_level(50) == (2, "Citizen")
    assert calculate_level(149) == (2, "Citizen")
    assert calculate_level(150) == (3, "Active Citizen")
    assert calculate_level(1499) == (6, "Neighbourhood Guardian")
    assert calculate_level(1500) == (7, "City Hero")
    assert calculate_level(99999) == (7, "City Hero")


def test_calculate_level_negative_xp_is_level_one():
    assert calculate_level(-5) == (1, "Newcomer")


def test_every_threshold_starts_its_level():
    for index, threshold in enumerate(LEVEL_THRESHOLDS):
        assert calculate_level(threshold).level == index + 1
        assert calculate_level(threshold).title == LEVEL_TITLES[index]


def test_xp_to_next_level_mid_level():
    progress = xp_to_next_level(75, 2)
    assert progress.current == 25
    assert progress.required == 100
    assert progress.percentage == 25


def test_xp_to_next_level_rounds_half_up():
    # 1/8 of the way through level 2 -> 12.5%
    assert xp_to_next_level(62.5, 2).percentage == 13
    assert xp_to_next_level(216, 3).percentage == 33
    assert xp_to_next_level(1150, 6).percentage == 30


def test_xp_to_next_level_at_max_level():
    progress = xp_to_next_level(2000, MAX_LEVEL)
    assert progress == (2000, 2000, 100)


def test_xp_to_next_level_is_not_clamped():
    # Stale level: XP already past the next threshold
    assert xp_to_next_level(200, 2).percentage == 150


def test_next_level_title():
    assert next_level_title(1) == "Citizen"
    assert next_level_title(6) == "City Hero"
    assert next_level_title(7) == "City Hero"


def test_level_never_decreases_as_xp_grows():
    levels = [calculate_level(xp).level for xp in range(-10, 2000)]
    assert levels == sorted(levels)


def test_progress_stays_inside_the_level():
    for level in range(1, MAX_LEVEL):
        for xp in range(LEVEL_THRESHOLDS[level - 1], LEVEL_THRESHOLDS[level]):
            progress = xp_to_next_level(xp, level)
            assert progress.current + LEVEL_THRESHOLDS[level - 1] == xp
            assert progress.current < progress.required
