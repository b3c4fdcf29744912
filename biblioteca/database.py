import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2 import sql
from psycopg2.extras import RealDictCursor

from biblioteca.book import Book
from biblioteca.errors import NotFoundError
from biblioteca.store import CatalogStore, compute_statistics, utcnow
from biblioteca.validators import validate_new_book

logger = logging.getLogger(__name__)

COLUMNS = 'id, titulo, autor, "año", genero, isbn, imagen_url, disponible, fecha_creacion, fecha_actualizacion'


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _timestamp() -> str:
    return utcnow().isoformat(timespec="microseconds")


def _lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


class SQLiteStore(CatalogStore):
    """SQLite dosyasındaki bir tabloya bağlı depo; her işlem kendi bağlantısını açar."""

    backend_name = "sqlite"
    driver_error = sqlite3.Error

    def __init__(self, db_file: str, table: str) -> None:
        self.db_file = db_file
        self.table = table
        self._table = _quote_identifier(table)

    def _error_code(self, exc: Exception) -> Optional[str]:
        return getattr(exc, "sqlite_errorname", None)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        # SQLite'ın LOWER() işlevi yalnızca ASCII harfleri küçültür
        conn.create_function("py_lower", 1, _lower, deterministic=True)
        try:
            conn.execute("PRAGMA journal_mode=WAL;")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------- Şema ------------------------- #
    def ensure_schema(self) -> None:
        with self._errors(f"Error al crear la tabla {self.table}"), self._connection() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    titulo TEXT NOT NULL,
                    autor TEXT NOT NULL,
                    "año" INTEGER NOT NULL,
                    genero TEXT NOT NULL,
                    isbn TEXT,
                    imagen_url TEXT,
                    disponible INTEGER NOT NULL DEFAULT 1,
                    fecha_creacion TEXT NOT NULL,
                    fecha_actualizacion TEXT NOT NULL
                )
            """)

    def count(self) -> int:
        with self._errors("Error al contar libros"), self._connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {self._table}").fetchone()[0]

    def seed(self, books: Iterable[Mapping[str, Any]]) -> int:
        now = _timestamp()
        rows = []
        for data in books:
            fields = validate_new_book(data)
            rows.append((fields["titulo"], fields["autor"], fields["año"], fields["genero"], fields["isbn"],
                         int(bool(data.get("disponible", True))), now, now))
        with self._errors("Error al insertar libros de ejemplo"), self._connection() as conn:
            conn.executemany(
                f'INSERT INTO {self._table} (titulo, autor, "año", genero, isbn, disponible, '
                f'fecha_creacion, fecha_actualizacion) VALUES (?, ?, ?, ?, ?, ?, ?, ?)',
                rows,
            )
        return len(rows)

    def drop(self) -> None:
        with self._errors(f"Error al eliminar la tabla {self.table}"), self._connection() as conn:
            conn.execute(f"DROP TABLE IF EXISTS {self._table}")

    # ------------------------- Çekirdek işlemler ------------------------- #
    def list_all(self) -> List[Book]:
        with self._errors("Error al obtener libros"), self._connection() as conn:
            rows = conn.execute(f"SELECT {COLUMNS} FROM {self._table} ORDER BY id ASC").fetchall()
            return [Book.from_dict(dict(row)) for row in rows]

    def get_by_id(self, book_id: int) -> Book:
        self._check_id(book_id)
        with self._errors("Error al obtener libro"), self._connection() as conn:
            return self._fetch(conn, book_id)

    def create(self, data: Mapping[str, Any]) -> Book:
        fields = validate_new_book(data)
        now = _timestamp()
        with self._errors("Error al agregar libro"), self._connection() as conn:
            cursor = conn.execute(
                f'INSERT INTO {self._table} (titulo, autor, "año", genero, isbn, disponible, '
                f'fecha_creacion, fecha_actualizacion) VALUES (?, ?, ?, ?, ?, 1, ?, ?)',
                (fields["titulo"], fields["autor"], fields["año"], fields["genero"], fields["isbn"], now, now),
            )
            return self._fetch(conn, cursor.lastrowid)

    def set_availability(self, book_id: int, disponible: bool) -> Book:
        self._check_id(book_id)
        with self._errors("Error al actualizar libro"), self._connection() as conn:
            return self._update(conn, book_id, "disponible = ?", int(bool(disponible)))

    def set_image(self, book_id: int, image_url: str) -> Book:
        self._check_id(book_id)
        with self._errors("Error al actualizar imagen"), self._connection() as conn:
            return self._update(conn, book_id, "imagen_url = ?", image_url)

    def delete(self, book_id: int) -> Book:
        self._check_id(book_id)
        with self._errors("Error al eliminar libro"), self._connection() as conn:
            book = self._fetch(conn, book_id)
            conn.execute(f"DELETE FROM {self._table} WHERE id = ?", (book_id,))
            return book

    def search(self, term: Optional[str]) -> List[Book]:
        if not term:
            return self.list_all()
        needle = term.lower()
        with self._errors("Error al buscar libros"), self._connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {COLUMNS} FROM {self._table}
                WHERE instr(py_lower(titulo), ?) > 0
                   OR instr(py_lower(autor), ?) > 0
                   OR instr(py_lower(genero), ?) > 0
                ORDER BY id ASC
                """,
                (needle, needle, needle),
            ).fetchall()
            return [Book.from_dict(dict(row)) for row in rows]

    def statistics(self) -> Dict[str, Any]:
        with self._errors("Error al obtener estadísticas"), self._connection() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS total, COALESCE(SUM(disponible), 0) AS disponibles FROM {self._table}"
            ).fetchone()
        return compute_statistics(row["total"], row["disponibles"])

    # ------------------------- Yardımcılar ------------------------- #
    def _fetch(self, conn: sqlite3.Connection, book_id: int) -> Book:
        row = conn.execute(f"SELECT {COLUMNS} FROM {self._table} WHERE id = ?", (book_id,)).fetchone()
        if row is None:
            raise NotFoundError()
        return Book.from_dict(dict(row))

    def _update(self, conn: sqlite3.Connection, book_id: int, assignment: str, value: Any) -> Book:
        # ISO zaman damgaları sözlük sırasıyla karşılaştırılabilir; MAX geriye gitmeyi önler
        cursor = conn.execute(
            f"UPDATE {self._table} SET {assignment}, "
            f"fecha_actualizacion = MAX(?, fecha_actualizacion) WHERE id = ?",
            (value, _timestamp(), book_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError()
        return self._fetch(conn, book_id)


class PostgresStore(CatalogStore):
    """PostgreSQL tablosuna bağlı depo; bağlantılar paylaşılan bir havuzdan alınır."""

    backend_name = "postgres"
    driver_error = psycopg2.Error

    def __init__(self, dsn: str, table: str, pool_size: int = 10, sslmode: Optional[str] = None) -> None:
        self.dsn = dsn
        self.table = table
        self.pool_size = pool_size
        self.sslmode = sslmode
        self._table = sql.Identifier(table)
        self._pool: Optional[pg_pool.ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()

    def _error_code(self, exc: Exception) -> Optional[str]:
        return getattr(exc, "pgcode", None)

    def _get_pool(self) -> pg_pool.ThreadedConnectionPool:
        # Havuz ilk kullanımda oluşturulur; modül içe aktarımı bağlantı açmaz
        with self._pool_lock:
            if self._pool is None:
                kwargs = {"sslmode": self.sslmode} if self.sslmode else {}
                self._pool = pg_pool.ThreadedConnectionPool(1, max(1, self.pool_size), dsn=self.dsn, **kwargs)
                logger.info(f"PostgreSQL connection pool created (max={self.pool_size})")
            return self._pool

    @contextmanager
    def _cursor(self) -> Iterator[RealDictCursor]:
        pool = self._get_pool()
        conn = pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def _query(self, template: str) -> sql.Composed:
        return sql.SQL(template).format(table=self._table)

    def close(self) -> None:
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None
                logger.info("PostgreSQL connection pool closed")

    # ------------------------- Şema ------------------------- #
    def ensure_schema(self) -> None:
        with self._errors(f"Error al crear la tabla {self.table}"), self._cursor() as cur:
            cur.execute(self._query("""
                CREATE TABLE IF NOT EXISTS {table} (
                    id SERIAL PRIMARY KEY,
                    titulo VARCHAR(255) NOT NULL,
                    autor VARCHAR(255) NOT NULL,
                    "año" INTEGER NOT NULL,
                    genero VARCHAR(100) NOT NULL,
                    isbn TEXT,
                    imagen_url TEXT,
                    disponible BOOLEAN DEFAULT true,
                    fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    fecha_actualizacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))

    def count(self) -> int:
        with self._errors("Error al contar libros"), self._cursor() as cur:
            cur.execute(self._query("SELECT COUNT(*) AS total FROM {table}"))
            return int(cur.fetchone()["total"])

    def seed(self, books: Iterable[Mapping[str, Any]]) -> int:
        rows = []
        for data in books:
            fields = validate_new_book(data)
            rows.append((fields["titulo"], fields["autor"], fields["año"], fields["genero"], fields["isbn"],
                         bool(data.get("disponible", True))))
        with self._errors("Error al insertar libros de ejemplo"), self._cursor() as cur:
            cur.executemany(
                self._query('INSERT INTO {table} (titulo, autor, "año", genero, isbn, disponible) '
                            'VALUES (%s, %s, %s, %s, %s, %s)'),
                rows,
            )
        return len(rows)

    def drop(self) -> None:
        with self._errors(f"Error al eliminar la tabla {self.table}"), self._cursor() as cur:
            cur.execute(self._query("DROP TABLE IF EXISTS {table}"))

    # ------------------------- Çekirdek işlemler ------------------------- #
    def list_all(self) -> List[Book]:
        with self._errors("Error al obtener libros"), self._cursor() as cur:
            cur.execute(self._query("SELECT * FROM {table} ORDER BY id ASC"))
            return [Book.from_dict(row) for row in cur.fetchall()]

    def get_by_id(self, book_id: int) -> Book:
        self._check_id(book_id)
        with self._errors("Error al obtener libro"), self._cursor() as cur:
            cur.execute(self._query("SELECT * FROM {table} WHERE id = %s"), (book_id,))
            return self._one(cur.fetchone())

    def create(self, data: Mapping[str, Any]) -> Book:
        fields = validate_new_book(data)
        with self._errors("Error al agregar libro"), self._cursor() as cur:
            cur.execute(
                self._query('INSERT INTO {table} (titulo, autor, "año", genero, isbn, disponible) '
                            'VALUES (%s, %s, %s, %s, %s, true) RETURNING *'),
                (fields["titulo"], fields["autor"], fields["año"], fields["genero"], fields["isbn"]),
            )
            return self._one(cur.fetchone())

    def set_availability(self, book_id: int, disponible: bool) -> Book:
        self._check_id(book_id)
        with self._errors("Error al actualizar libro"), self._cursor() as cur:
            cur.execute(
                self._query("UPDATE {table} SET disponible = %s, "
                            "fecha_actualizacion = GREATEST(LOCALTIMESTAMP, fecha_actualizacion) "
                            "WHERE id = %s RETURNING *"),
                (bool(disponible), book_id),
            )
            return self._one(cur.fetchone())

    def set_image(self, book_id: int, image_url: str) -> Book:
        self._check_id(book_id)
        with self._errors("Error al actualizar imagen"), self._cursor() as cur:
            cur.execute(
                self._query("UPDATE {table} SET imagen_url = %s, "
                            "fecha_actualizacion = GREATEST(LOCALTIMESTAMP, fecha_actualizacion) "
                            "WHERE id = %s RETURNING *"),
                (image_url, book_id),
            )
            return self._one(cur.fetchone())

    def delete(self, book_id: int) -> Book:
        self._check_id(book_id)
        with self._errors("Error al eliminar libro"), self._cursor() as cur:
            cur.execute(self._query("DELETE FROM {table} WHERE id = %s RETURNING *"), (book_id,))
            return self._one(cur.fetchone())

    def search(self, term: Optional[str]) -> List[Book]:
        if not term:
            return self.list_all()
        with self._errors("Error al buscar libros"), self._cursor() as cur:
            cur.execute(
                self._query("""
                    SELECT * FROM {table}
                    WHERE strpos(lower(titulo), lower(%(term)s)) > 0
                       OR strpos(lower(autor), lower(%(term)s)) > 0
                       OR strpos(lower(genero), lower(%(term)s)) > 0
                    ORDER BY id ASC
                """),
                {"term": term},
            )
            return [Book.from_dict(row) for row in cur.fetchall()]

    def statistics(self) -> Dict[str, Any]:
        with self._errors("Error al obtener estadísticas"), self._cursor() as cur:
            cur.execute(self._query("""
                SELECT
                    COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE disponible = true) AS disponibles
                FROM {table}
            """))
            row = cur.fetchone()
        return compute_statistics(row["total"], row["disponibles"])

    @staticmethod
    def _one(row: Optional[Mapping[str, Any]]) -> Book:
        if row is None:
            raise NotFoundError()
        return Book.from_dict(dict(row))
