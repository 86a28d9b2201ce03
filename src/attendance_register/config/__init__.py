import os


def get_settings_module() -> str:
    # APP_ENV selects the settings module, default 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "attendance_register.config.production"

    if env in {"test", "testing"}:
        return "attendance_register.config.testing"

    return "attendance_register.config.development"
