import pytest

from biblioteca.errors import UploadRejected, ValidationError
from biblioteca.uploads import placeholder_image_url, validate_image_upload
from biblioteca.validators import BookValidator, validate_availability, validate_new_book


def test_parse_year():
    assert BookValidator.parse_year(1965) == 1965
    assert BookValidator.parse_year(" 1965 ") == 1965
    assert BookValidator.parse_year(1965.0) == 1965
    assert BookValidator.parse_year(1965.5) is None
    assert BookValidator.parse_year("abc") is None
    assert BookValidator.parse_year(True) is None


def test_validate_new_book_normalizes_fields():
    fields = validate_new_book({"titulo": " Dune ", "autor": "Frank Herbert", "anio": "1965",
                                "genero": "Sci-Fi", "isbn": ""})
    assert fields == {"titulo": "Dune", "autor": "Frank Herbert", "año": 1965, "genero": "Sci-Fi", "isbn": None}


def test_validate_new_book_accepts_year_zero():
    fields = validate_new_book({"titulo": "Antiguo", "autor": "Anónimo", "año": 0, "genero": "Épica"})
    assert fields["año"] == 0


def test_validate_new_book_missing_fields():
    with pytest.raises(ValidationError) as excinfo:
        validate_new_book({"titulo": "Dune"})
    assert excinfo.value.status_code == 400


@pytest.mark.parametrize("value", [None, "yes", 1])
def test_validate_availability_requires_bool(value):
    with pytest.raises(ValidationError):
        validate_availability(value)


def test_image_upload_rules():
    validate_image_upload("image/png", 1024)
    validate_image_upload("IMAGE/JPEG", 5 * 1024 * 1024)
    with pytest.raises(UploadRejected) as excinfo:
        validate_image_upload("application/pdf", 10)
    assert excinfo.value.status_code == 400
    with pytest.raises(UploadRejected):
        validate_image_upload("image/png", 5 * 1024 * 1024 + 1)
    with pytest.raises(UploadRejected):
        validate_image_upload(None, 10)


def test_placeholder_image_url():
    url = placeholder_image_url("https://img.example/{id}/{name}", 7, "../mi portada.png")
    assert url == "https://img.example/7/mi%20portada.png"
    assert placeholder_image_url("https://img.example/{name}", 3) == "https://img.example/libro-3"
