from __future__ import annotations

from datetime import datetime


def _iso(value: datetime | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _parse_timestamp(value: datetime | str | None) -> datetime | str | None:
    # SQLite zaman damgalarını ISO metni olarak saklar
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


class Book:
    """Katalogdaki tek bir kitap kaydını temsil eder."""

    def __init__(self, id: int, titulo: str, autor: str, anio: int, genero: str, isbn: str | None = None,
                 imagen_url: str | None = None, disponible: bool = True,
                 fecha_creacion: datetime | str | None = None,
                 fecha_actualizacion: datetime | str | None = None) -> None:
        self.id = id
        self.titulo = titulo
        self.autor = autor
        self.anio = anio
        self.genero = genero
        self.isbn = isbn
        self.imagen_url = imagen_url
        self.disponible = disponible
        self.fecha_creacion = _parse_timestamp(fecha_creacion)
        self.fecha_actualizacion = _parse_timestamp(fecha_actualizacion)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.titulo} - {self.autor} ({self.anio})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Book id={self.id} titulo={self.titulo!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "titulo": self.titulo,
            "autor": self.autor,
            "año": self.anio,
            "genero": self.genero,
            "isbn": self.isbn,
            "imagen_url": self.imagen_url,
            "disponible": self.disponible,
            "fecha_creacion": _iso(self.fecha_creacion),
            "fecha_actualizacion": _iso(self.fecha_actualizacion),
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        # Veritabanı satırları "año" anahtarını kullanır; "anio" da kabul edilir
        anio = data["año"] if "año" in data else data["anio"]
        return Book(
            id=int(data["id"]),
            titulo=data["titulo"],
            autor=data["autor"],
            anio=int(anio),
            genero=data["genero"],
            isbn=data.get("isbn"),
            imagen_url=data.get("imagen_url"),
            # SQLite boolean değerleri 0/1 olarak döndürür
            disponible=bool(data.get("disponible", True)),
            fecha_creacion=data.get("fecha_creacion"),
            fecha_actualizacion=data.get("fecha_actualizacion"),
        )


SEED_BOOKS = [
    {"titulo": "Cien años de soledad", "autor": "Gabriel García Márquez", "año": 1967,
     "genero": "Ficción", "isbn": "978-0307474728", "disponible": True},
    {"titulo": "Don Quijote de la Mancha", "autor": "Miguel de Cervantes", "año": 1605,
     "genero": "Clásico", "isbn": "978-8424936464", "disponible": True},
    {"titulo": "1984", "autor": "George Orwell", "año": 1949,
     "genero": "Ciencia Ficción", "isbn": "978-0451524935", "disponible": False},
    {"titulo": "El Principito", "autor": "Antoine de Saint-Exupéry", "año": 1943,
     "genero": "Infantil", "isbn": "978-0156012195", "disponible": True},
]
