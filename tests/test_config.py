from practice_console.config import Settings, get_settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.STRICT_USER_VALIDATION is False
    assert settings.MAX_LOGIN_ATTEMPTS == 5
    assert settings.TOP_USERS_LIMIT == 10


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STRICT_USER_VALIDATION", "true")
    monkeypatch.setenv("LOCKOUT_MINUTES", "15")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.STRICT_USER_VALIDATION is True
        assert settings.LOCKOUT_MINUTES == 15
    finally:
        get_settings.cache_clear()
