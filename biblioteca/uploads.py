import os
import time
from typing import Optional
from urllib.parse import quote

from biblioteca.errors import UploadRejected

MAX_IMAGE_BYTES = 5 * 1024 * 1024


def validate_image_upload(content_type: Optional[str], size: int, max_bytes: int = MAX_IMAGE_BYTES) -> None:
    """Yalnızca resim MIME türlerini ve boyut sınırı içindeki yükleri kabul et."""
    if not content_type or not content_type.lower().startswith("image/"):
        raise UploadRejected("Solo se permiten imágenes")
    if size > max_bytes:
        raise UploadRejected(f"La imagen supera el tamaño máximo de {max_bytes // (1024 * 1024)} MB")


def placeholder_image_url(template: str, book_id: int, filename: Optional[str] = None) -> str:
    """Resim baytları saklanmaz; kayıt için yer tutucu bir URL üret.

    Şablon ``{id}``, ``{name}`` ve ``{ts}`` alanlarını kullanabilir.
    """
    name = os.path.basename(filename or "") or f"libro-{book_id}"
    return template.format(id=book_id, name=quote(name), ts=int(time.time()))
