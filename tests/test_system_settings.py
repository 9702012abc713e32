import pytest

from practice_console.auth import ValidationError
from practice_console.system_settings import SECTIONS, SystemSettings


@pytest.fixture
def system_settings():
    return SystemSettings()


def test_all_sections_have_defaults(system_settings):
    data = system_settings.to_dict()
    assert set(data) == set(SECTIONS)
    assert data["security"]["login_policy"]["max_attempts"] == 5


def test_update_is_shallow_merge(system_settings):
    updated = system_settings.update_section("general", {"practice_name": "Valley Clinic"})

    assert updated.practice_name == "Valley Clinic"
    assert updated.timezone == "America/Los_Angeles"
    assert system_settings.section("general") is updated


def test_nested_objects_are_replaced(system_settings):
    system_settings.update_section("security", {"password_policy": {"min_length": 16}})
    assert system_settings.section("security").password_policy == {"min_length": 16}


def test_lists_are_replaced_not_appended(system_settings):
    system_settings.update_section("billing", {"payment_methods": ["cash"]})
    assert system_settings.section("billing").payment_methods == ["cash"]


def test_invalid_patch_leaves_section_unchanged(system_settings):
    before = system_settings.section("email")
    with pytest.raises(ValidationError):
        system_settings.update_section("email", {"smtp_port": 70000})
    with pytest.raises(ValidationError):
        system_settings.update_section("email", {"smtp_hostname": "typo"})
    assert system_settings.section("email") is before


def test_unknown_section(system_settings):
    with pytest.raises(ValidationError):
        system_settings.update_section("telemetry", {"enabled": True})
    with pytest.raises(ValidationError):
        SystemSettings(telemetry=None)
