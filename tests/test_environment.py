import pytest

from biblioteca.config import Settings
from biblioteca.environment import all_environments, resolve_environment, table_name_for


def test_production_uses_prod_table():
    profile = resolve_environment("production")
    assert profile.table_prefix == "prod"
    assert profile.table == "libros_prod"
    assert profile.badge_text == "PROD"
    assert profile.features["email_notifications"] is True


def test_staging_profile():
    profile = resolve_environment("staging")
    assert profile.table == "libros_staging"
    assert profile.badge_color == "#FFD700"
    assert profile.features["debug"] is True


@pytest.mark.parametrize("name", ["qa", "", None, "   ", "dev"])
def test_unknown_environment_falls_back_to_development(name):
    profile = resolve_environment(name)
    assert profile.environment == "development"
    assert profile.table == "libros_dev"


def test_environment_name_is_normalized():
    assert resolve_environment(" Production ").table == "libros_prod"


def test_resolution_is_memoized():
    assert resolve_environment("staging") is resolve_environment("staging")


def test_features_are_read_only():
    profile = resolve_environment("development")
    with pytest.raises(TypeError):
        profile.features["debug"] = False


def test_shared_table_mode():
    profile = resolve_environment("production")
    assert table_name_for(profile, "shared") == "libros"
    assert table_name_for(profile, "environment") == "libros_prod"


def test_all_environments_lists_three_tables():
    assert [p.table for p in all_environments()] == ["libros_dev", "libros_staging", "libros_prod"]


def test_settings_table_name():
    assert Settings(environment="production").table_name == "libros_prod"
    assert Settings(environment="production", table_mode="shared").table_name == "libros"


def test_settings_reads_node_env(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("NODE_ENV", "staging")
    assert Settings().profile.environment == "staging"


def test_settings_port_prefers_port_variable(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("API_PORT", "9000")
    assert Settings().api_port == 8080
