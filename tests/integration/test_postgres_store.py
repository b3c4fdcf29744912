import os
import uuid

import pytest

from biblioteca.bootstrap import bootstrap_catalog
from biblioteca.errors import NotFoundError, StorageError

pytestmark = pytest.mark.integration

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest.fixture
def pg_store():
    if not TEST_DATABASE_URL:
        pytest.skip("TEST_DATABASE_URL not set; skipping PostgreSQL integration tests")
    from biblioteca.database import PostgresStore

    # Çakışmayı önlemek için her test kendi tablosunu kullanır
    store = PostgresStore(TEST_DATABASE_URL, f"libros_test_{uuid.uuid4().hex[:8]}", pool_size=2)
    store.ensure_schema()
    yield store
    store.drop()
    store.close()


def test_bootstrap_and_statistics(pg_store):
    assert bootstrap_catalog(pg_store) == 4
    assert bootstrap_catalog(pg_store) == 0
    assert pg_store.statistics() == {"total": 4, "disponibles": 3, "prestados": 1, "porcentajeDisponible": "75.0"}


def test_crud_cycle(pg_store):
    book = pg_store.create({"titulo": "Dune", "autor": "Frank Herbert", "año": 1965, "genero": "Sci-Fi"})
    assert book.disponible is True

    updated = pg_store.set_availability(book.id, False)
    assert updated.disponible is False
    assert updated.fecha_actualizacion >= book.fecha_actualizacion

    assert [b.titulo for b in pg_store.search("HERBERT")] == ["Dune"]

    deleted = pg_store.delete(book.id)
    assert deleted.id == book.id
    with pytest.raises(NotFoundError):
        pg_store.get_by_id(book.id)


def test_unreachable_server_raises_storage_error():
    if not TEST_DATABASE_URL:
        pytest.skip("TEST_DATABASE_URL not set; skipping PostgreSQL integration tests")
    from biblioteca.database import PostgresStore

    store = PostgresStore("postgresql://nobody@127.0.0.1:1/nothing?connect_timeout=1", "libros_dev")
    with pytest.raises(StorageError):
        store.ensure_schema()
