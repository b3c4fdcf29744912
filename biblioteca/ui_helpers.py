import os
import json
from typing import Any, Dict, List
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from biblioteca.book import Book
from biblioteca.environment import EnvironmentProfile

# Environment variable to control CLI output mode
# İzin verilen değerler: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "BIBLIOTECA_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_book_list(books: List[Book]) -> None:
    """Kitap listesini mevcut çıktı moduna göre yazdır.
    - plain: '#id Title by Author (year) [status]' satırları, veya 'No books in catalog.'
    - json: kitap sözlüklerinden oluşan JSON dizisi
    - rich: Rich tablosu
    """
    mode = get_output_mode()

    if not books:
        print("No books in catalog.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Libros", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Título", style="white")
        table.add_column("Autor", style="white")
        table.add_column("Año", justify="right")
        table.add_column("Género")
        table.add_column("Estado")
        for b in books:
            status = "[green]Disponible[/]" if b.disponible else "[red]Prestado[/]"
            table.add_row(str(b.id), b.titulo, b.autor, str(b.anio), b.genero, status)
        _console.print(table)
    else:
        for b in books:
            status = "available" if b.disponible else "on loan"
            print(f"#{b.id} {b.titulo} by {b.autor} ({b.anio}) [{status}]")


def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Total:[/] {stats['total']}\n"
            f"[bold]Disponibles:[/] {stats['disponibles']}\n"
            f"[bold]Prestados:[/] {stats['prestados']}\n"
            f"[bold]% Disponible:[/] {stats['porcentajeDisponible']}"
        )
        _console.print(Panel.fit(content, title="📊 Estadísticas", border_style="blue"))
    else:
        print(f"Total: {stats['total']}")
        print(f"Available: {stats['disponibles']}")
        print(f"On loan: {stats['prestados']}")
        print(f"Available %: {stats['porcentajeDisponible']}")


def print_environment(profile: EnvironmentProfile, table: str) -> None:
    mode = get_output_mode()
    data = profile.to_dict()
    data["table"] = table

    if mode == "json":
        print(json.dumps(data, ensure_ascii=False))
    elif mode == "rich":
        flags = "\n".join(f"  {'✅' if on else '❌'} {name}" for name, on in profile.features.items())
        content = f"[bold]Tabla:[/] {table}\n[bold]Features:[/]\n{flags}"
        _console.print(Panel.fit(content, title=f"🌍 {profile.name} [{profile.badge_text}]",
                                 border_style="green"))
    else:
        print(f"Environment: {profile.environment} ({profile.badge_text})")
        print(f"Table: {table}")
        for name, on in profile.features.items():
            print(f"{name}: {'on' if on else 'off'}")
