import pytest
from fastapi.testclient import TestClient

from biblioteca.api import create_app
from biblioteca.config import Settings
from biblioteca.database import SQLiteStore
from biblioteca.store import MemoryStore


@pytest.fixture
def settings(monkeypatch):
    # .env veya kabuktan gelen değerlerin testlere sızmasını önle
    for name in ("DATABASE_URL", "STORAGE_BACKEND", "TABLE_MODE", "ENVIRONMENT", "NODE_ENV",
                 "PORT", "API_PORT", "MAX_UPLOAD_SIZE", "IMAGE_PLACEHOLDER_URL", "APP_NAME", "APP_VERSION"):
        monkeypatch.delenv(name, raising=False)
    return Settings(environment="development", storage_backend="memory")


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    # Her test için benzersiz bir veritabanı dosyası oluştur
    if request.param == "memory":
        s = MemoryStore("libros_dev")
    else:
        s = SQLiteStore(str(tmp_path / f"test_{request.node.name}.db"), "libros_dev")
    s.ensure_schema()
    yield s
    s.close()


@pytest.fixture
def client(settings, store):
    """Tohum verisiyle başlatılmış bir test istemcisi (lifespan çalışır)."""
    app = create_app(settings=settings, store=store)
    with TestClient(app) as test_client:
        yield test_client
