from typing import Optional


class CatalogError(Exception):
    """Katalog işlemlerinin temel hatası; HTTP durum kodunu taşır."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Eksik veya hatalı zorunlu alanlar."""

    status_code = 400


class NotFoundError(CatalogError):
    status_code = 404

    def __init__(self, message: str = "Libro no encontrado") -> None:
        super().__init__(message)


class UploadRejected(CatalogError):
    """Resim olmayan veya boyut sınırını aşan yükleme."""

    status_code = 400


class StorageError(CatalogError):
    """Veritabanı bağlantı veya sorgu hatası; varsa sürücü hata kodunu taşır."""

    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
