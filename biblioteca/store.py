"""Catalog storage interface and the in-memory backend.

Every backend is bound to one table name, chosen by the environment profile
and table mode at construction. ``create_store`` picks the backend from the
settings so callers never depend on a concrete class.
"""
from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from biblioteca.book import Book
from biblioteca.errors import CatalogError, NotFoundError, StorageError
from biblioteca.validators import validate_new_book

logger = logging.getLogger(__name__)

MAX_BOOK_ID = 2**31 - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_statistics(total: int, disponibles: int) -> Dict[str, Any]:
    """İstatistik yükünü oluştur; toplam 0 ise yüzde 0 olur."""
    total = int(total or 0)
    disponibles = int(disponibles or 0)
    porcentaje: Union[str, int] = f"{disponibles / total * 100:.1f}" if total > 0 else 0
    return {
        "total": total,
        "disponibles": disponibles,
        "prestados": total - disponibles,
        "porcentajeDisponible": porcentaje,
    }


class CatalogStore(ABC):
    """Tek bir tabloya bağlı kitap deposu."""

    table: str
    backend_name = "abstract"
    # Alt sınıflar sürücünün temel hata sınıfını belirler
    driver_error: type = Exception

    # ------------------------- Şema ------------------------- #
    @abstractmethod
    def ensure_schema(self) -> None: ...

    @abstractmethod
    def count(self) -> int: ...

    @abstractmethod
    def seed(self, books: Iterable[Mapping[str, Any]]) -> int: ...

    @abstractmethod
    def drop(self) -> None: ...

    # ------------------------- Çekirdek işlemler ------------------------- #
    @abstractmethod
    def list_all(self) -> List[Book]: ...

    @abstractmethod
    def get_by_id(self, book_id: int) -> Book: ...

    @abstractmethod
    def create(self, data: Mapping[str, Any]) -> Book: ...

    @abstractmethod
    def set_availability(self, book_id: int, disponible: bool) -> Book: ...

    @abstractmethod
    def set_image(self, book_id: int, image_url: str) -> Book: ...

    @abstractmethod
    def delete(self, book_id: int) -> Book: ...

    @abstractmethod
    def search(self, term: Optional[str]) -> List[Book]: ...

    @abstractmethod
    def statistics(self) -> Dict[str, Any]: ...

    def close(self) -> None:
        """Bağlantıları serbest bırak; varsayılan olarak yapılacak bir şey yok."""

    def is_healthy(self) -> bool:
        try:
            self.count()
        except StorageError:
            return False
        return True

    # ------------------------- Yardımcılar ------------------------- #
    @staticmethod
    def _check_id(book_id: int) -> None:
        # Kimlik sütunu int4 (SERIAL); aralık dışındaki bir kimlik hiçbir arka uçta kayıtlı olamaz
        if not 0 < book_id <= MAX_BOOK_ID:
            raise NotFoundError()

    def _error_code(self, exc: Exception) -> Optional[str]:
        return None

    @contextmanager
    def _errors(self, message: str) -> Iterator[None]:
        """Sürücü hatalarını işlem mesajıyla birlikte StorageError'a çevir."""
        try:
            yield
        except CatalogError:
            raise
        except self.driver_error as e:
            code = self._error_code(e)
            logger.error(f"{message} (table={self.table}, code={code}): {e}")
            raise StorageError(message, code=code) from e


class MemoryStore(CatalogStore):
    """Süreç belleğinde tutulan depo; kimlikler silmeden sonra yeniden kullanılmaz."""

    backend_name = "memory"

    def __init__(self, table: str = "libros") -> None:
        self.table = table
        self._rows: Dict[int, Book] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def ensure_schema(self) -> None:
        pass

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def seed(self, books: Iterable[Mapping[str, Any]]) -> int:
        inserted = 0
        for data in books:
            book = self._insert(validate_new_book(data), bool(data.get("disponible", True)))
            inserted += 1
            logger.debug(f"Seeded book {book.id} into {self.table}")
        return inserted

    def drop(self) -> None:
        with self._lock:
            self._rows.clear()
            self._next_id = 1

    def list_all(self) -> List[Book]:
        with self._lock:
            return [copy.copy(self._rows[k]) for k in sorted(self._rows)]

    def get_by_id(self, book_id: int) -> Book:
        self._check_id(book_id)
        with self._lock:
            book = self._rows.get(book_id)
            if book is None:
                raise NotFoundError()
            return copy.copy(book)

    def create(self, data: Mapping[str, Any]) -> Book:
        return self._insert(validate_new_book(data), True)

    def set_availability(self, book_id: int, disponible: bool) -> Book:
        self._check_id(book_id)
        return self._update(book_id, disponible=bool(disponible))

    def set_image(self, book_id: int, image_url: str) -> Book:
        self._check_id(book_id)
        return self._update(book_id, imagen_url=image_url)

    def delete(self, book_id: int) -> Book:
        self._check_id(book_id)
        with self._lock:
            book = self._rows.pop(book_id, None)
            if book is None:
                raise NotFoundError()
            return book

    def search(self, term: Optional[str]) -> List[Book]:
        if not term:
            return self.list_all()
        needle = term.lower()
        return [
            b for b in self.list_all()
            if needle in b.titulo.lower() or needle in b.autor.lower() or needle in b.genero.lower()
        ]

    def statistics(self) -> Dict[str, Any]:
        with self._lock:
            total = len(self._rows)
            disponibles = sum(1 for b in self._rows.values() if b.disponible)
        return compute_statistics(total, disponibles)

    def _insert(self, fields: Dict[str, Any], disponible: bool) -> Book:
        now = utcnow()
        with self._lock:
            book = Book(
                id=self._next_id,
                titulo=fields["titulo"],
                autor=fields["autor"],
                anio=fields["año"],
                genero=fields["genero"],
                isbn=fields["isbn"],
                disponible=disponible,
                fecha_creacion=now,
                fecha_actualizacion=now,
            )
            self._rows[book.id] = book
            self._next_id += 1
            return copy.copy(book)

    def _update(self, book_id: int, **changes: Any) -> Book:
        with self._lock:
            book = self._rows.get(book_id)
            if book is None:
                raise NotFoundError()
            for name, value in changes.items():
                setattr(book, name, value)
            now = utcnow()
            previous = book.fecha_actualizacion
            book.fecha_actualizacion = max(now, previous) if isinstance(previous, datetime) else now
            return copy.copy(book)


def sqlite_path_from_url(url: str) -> str:
    """``sqlite:///library.db`` -> ``library.db``; ``sqlite:////tmp/x.db`` -> ``/tmp/x.db``."""
    return url[len("sqlite:///"):]


def create_store(settings, table: Optional[str] = None) -> CatalogStore:
    """Ayarlara göre uygun depo arka ucunu oluştur."""
    table = table or settings.table_name
    backend = (settings.storage_backend or "auto").strip().lower()
    url = settings.database_url or ""

    if backend == "auto":
        if url.startswith(("postgres://", "postgresql://")):
            backend = "postgres"
        elif url.startswith("sqlite:///"):
            backend = "sqlite"
        else:
            backend = "memory"

    if backend == "memory":
        return MemoryStore(table)

    from biblioteca.database import PostgresStore, SQLiteStore

    if backend == "sqlite":
        path = sqlite_path_from_url(url) if url.startswith("sqlite:///") else "biblioteca.db"
        return SQLiteStore(path, table)
    if backend == "postgres":
        if not url:
            raise ValueError("DATABASE_URL is required for the postgres backend")
        return PostgresStore(url, table, pool_size=settings.database_pool_size,
                             sslmode=settings.database_sslmode)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
