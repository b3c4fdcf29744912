import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from biblioteca.cli import app
from biblioteca.errors import StorageError
from biblioteca.store import MemoryStore
from biblioteca.ui_helpers import OUTPUT_MODE_ENV

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    # Her test için ayrı bir SQLite dosyası kullan
    monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("TABLE_MODE", "environment")
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


def test_list_empty_catalog():
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No books in catalog." in result.stdout


def test_init_db_seeds_once():
    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 0
    assert "libros_dev: inserted 4 sample books" in result.stdout

    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 0
    assert "libros_dev: already contains 4 book(s)" in result.stdout


def test_init_db_all_environments():
    result = runner.invoke(app, ["init-db", "--all-environments"])
    assert result.exit_code == 0
    for table in ("libros_dev", "libros_staging", "libros_prod"):
        assert f"{table}: inserted 4 sample books" in result.stdout


def test_init_db_all_environments_shared_mode(monkeypatch):
    monkeypatch.setenv("TABLE_MODE", "shared")
    result = runner.invoke(app, ["init-db", "--all-environments"])
    assert result.exit_code == 0
    assert result.stdout.count("libros:") == 1


def test_list_after_init():
    runner.invoke(app, ["init-db"])
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "#1 Cien años de soledad by Gabriel García Márquez (1967) [available]" in result.stdout
    assert "#3 1984 by George Orwell (1949) [on loan]" in result.stdout


def test_search():
    runner.invoke(app, ["init-db"])
    result = runner.invoke(app, ["search", "ORWELL"])
    assert result.exit_code == 0
    assert "1984" in result.stdout
    assert "Principito" not in result.stdout


def test_stats_plain_and_json():
    runner.invoke(app, ["init-db"])
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total: 4" in result.stdout
    assert "Available %: 75.0" in result.stdout

    result = runner.invoke(app, ["--output", "json", "stats"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"total": 4, "disponibles": 3, "prestados": 1,
                                         "porcentajeDisponible": "75.0"}


def test_env_command(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    result = runner.invoke(app, ["env"])
    assert result.exit_code == 0
    assert "Environment: production (PROD)" in result.stdout
    assert "Table: libros_prod" in result.stdout
    assert "email_notifications: on" in result.stdout


def test_reset_db():
    runner.invoke(app, ["init-db"])
    result = runner.invoke(app, ["reset-db", "--yes"])
    assert result.exit_code == 0
    assert "Table libros_dev dropped." in result.stdout

    result = runner.invoke(app, ["list"])
    assert "No books in catalog." in result.stdout


def test_reset_db_aborts_without_confirmation():
    runner.invoke(app, ["init-db"])
    result = runner.invoke(app, ["reset-db"], input="n\n")
    assert result.exit_code == 1
    assert "Aborted." in result.stdout

    result = runner.invoke(app, ["stats"])
    assert "Total: 4" in result.stdout


def test_postgres_backend_without_url_fails(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "postgres")
    monkeypatch.delenv("DATABASE_URL")
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 1


def test_storage_error_is_reported(monkeypatch):
    class BrokenStore(MemoryStore):
        def list_all(self):
            raise StorageError("db down", code="08006")

    monkeypatch.setattr("biblioteca.cli.create_store", lambda settings, table=None: BrokenStore("libros_dev"))
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 1
    assert "Error: db down" in result.stdout


@patch("subprocess.run")
@patch("webbrowser.open")
def test_serve_command(mock_webbrowser_open, mock_subprocess_run):
    result = runner.invoke(app, ["serve", "--port", "4000", "--open"])
    assert result.exit_code == 0
    assert "Starting web UI on http://127.0.0.1:4000" in result.stdout
    mock_webbrowser_open.assert_called_once_with("http://127.0.0.1:4000")
    mock_subprocess_run.assert_called_once()
    # uvicorn'un doğru argümanlarla çağrıldığını kontrol et
    args = mock_subprocess_run.call_args[0][0]
    assert "uvicorn" in args
    assert "biblioteca.api:create_app" in args
    assert "--factory" in args
    assert args[args.index("--port") + 1] == "4000"
