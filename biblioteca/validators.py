from typing import Any, Dict, Mapping, Optional

from biblioteca.errors import ValidationError

REQUIRED_FIELDS = ("titulo", "autor", "año", "genero")
MISSING_FIELDS_MESSAGE = "Faltan campos requeridos"


class BookValidator:
    """Validations for incoming book payloads.

    Only presence of the required fields and an integer-parseable year are
    checked; ISBN is free-form.
    """

    @staticmethod
    def is_blank(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        return False

    @staticmethod
    def parse_year(value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        try:
            return int(str(value).strip())
        except (TypeError, ValueError):
            return None

    @staticmethod
    def clean_optional(value: Any) -> Optional[str]:
        if BookValidator.is_blank(value):
            return None
        return str(value).strip()


def validate_new_book(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Check a create payload and return the normalized field values.

    Accepts ``anio`` as an alias of ``año``. Raises ``ValidationError``.
    """
    payload = dict(data)
    if "año" not in payload and "anio" in payload:
        payload["año"] = payload["anio"]

    # 0 geçerli bir yıldır; yalnızca None veya boş metin eksik sayılır
    if any(BookValidator.is_blank(payload.get(name)) for name in REQUIRED_FIELDS):
        raise ValidationError(MISSING_FIELDS_MESSAGE)

    anio = BookValidator.parse_year(payload["año"])
    if anio is None:
        raise ValidationError("El año debe ser un número entero")

    return {
        "titulo": str(payload["titulo"]).strip(),
        "autor": str(payload["autor"]).strip(),
        "año": anio,
        "genero": str(payload["genero"]).strip(),
        "isbn": BookValidator.clean_optional(payload.get("isbn")),
    }


def validate_availability(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError("El campo 'disponible' debe ser booleano")
    return value
