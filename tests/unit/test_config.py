"""Unit tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from courtside.config import Settings


def test_defaults(monkeypatch):
    for name in ("DEFAULT_PLAYER_RATING", "RPA_MULTIPLIER", "LOG_LEVEL", "STRICT_SET_RULES"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.default_player_rating == 1500.0
    assert settings.rpa_multiplier == 1.0
    assert settings.strict_set_rules is True
    assert (settings.points_win, settings.points_draw, settings.points_loss) == (3, 1, 0)
    assert settings.group_placement_points[1] == 100
    assert settings.knockout_progress_points["finals"] == 80


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEFAULT_PLAYER_RATING", "1200")
    monkeypatch.setenv("STRICT_SET_RULES", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.default_player_rating == 1200.0
    assert settings.strict_set_rules is False
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("field,value", [
    ("log_level", "LOUD"),
    ("log_format", "xml"),
    ("default_player_rating", 0),
    ("rpa_multiplier", -1.5),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
