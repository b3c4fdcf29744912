import pytest

from biblioteca.bootstrap import bootstrap_catalog
from biblioteca.errors import StorageError
from biblioteca.store import MemoryStore


def test_bootstrap_seeds_empty_table(store):
    assert bootstrap_catalog(store) == 4
    titles = [b.titulo for b in store.list_all()]
    assert titles == ["Cien años de soledad", "Don Quijote de la Mancha", "1984", "El Principito"]
    assert [b.disponible for b in store.list_all()] == [True, True, False, True]


def test_bootstrap_is_idempotent(store):
    bootstrap_catalog(store)
    assert bootstrap_catalog(store) == 0
    assert store.count() == 4


def test_bootstrap_never_touches_non_empty_table(store):
    store.create({"titulo": "Dune", "autor": "Frank Herbert", "año": 1965, "genero": "Sci-Fi"})
    assert bootstrap_catalog(store) == 0
    assert [b.titulo for b in store.list_all()] == ["Dune"]


def test_bootstrap_creates_missing_sqlite_table(tmp_path):
    from biblioteca.database import SQLiteStore

    store = SQLiteStore(str(tmp_path / "fresh.db"), "libros_staging")
    assert bootstrap_catalog(store) == 4
    assert store.statistics()["prestados"] == 1


def test_bootstrap_propagates_storage_errors():
    class BrokenStore(MemoryStore):
        def ensure_schema(self):
            raise StorageError("connection refused", code="08001")

    with pytest.raises(StorageError) as excinfo:
        bootstrap_catalog(BrokenStore("libros_dev"))
    assert excinfo.value.code == "08001"
