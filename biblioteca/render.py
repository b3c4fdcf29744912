"""Server-rendered catalog page."""
from pathlib import Path
from typing import Any, Dict, Iterable

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from biblioteca.book import Book
from biblioteca.environment import EnvironmentProfile

templates_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))


def render_catalog_page(request: Request, books: Iterable[Book], profile: EnvironmentProfile,
                        stats: Dict[str, Any], title: str = "Biblioteca Digital") -> HTMLResponse:
    # .html şablonlarında Jinja2 otomatik kaçışı açıktır
    return templates.TemplateResponse(
        request,
        "catalog.html",
        {
            "title": title,
            "profile": profile,
            "stats": stats,
            "books": list(books),
        },
    )
