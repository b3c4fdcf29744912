import logging
import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from biblioteca.bootstrap import bootstrap_catalog
from biblioteca.config import Settings
from biblioteca.environment import all_environments, table_name_for
from biblioteca.errors import StorageError
from biblioteca.store import CatalogStore, create_store
from biblioteca.ui_helpers import print_book_list, print_environment, print_stats_result, set_output_mode

APP_NAME = "Biblioteca CLI"

console = Console()

app = typer.Typer(help="Biblioteca Digital bakım komutları")


def _open_store(settings: Settings, table: Optional[str] = None) -> CatalogStore:
    try:
        return create_store(settings, table)
    except ValueError as e:
        console.print(f"[bold red]Configuration error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Çıktı formatı: plain | json | rich (varsayılan: plain)",
    )
):
    """CLI için genel seçenekler (ör. çıktı modu)."""
    logging.basicConfig(level=Settings().log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    if output:
        set_output_mode(output)


@app.command("init-db")
def cli_init_db(
    all_environments_: bool = typer.Option(
        False, "--all-environments", "-a", help="dev, staging ve prod tablolarının hepsini hazırla"
    ),
):
    """Tabloyu oluştur ve boşsa örnek kitapları ekle."""
    settings = Settings()
    if all_environments_:
        tables = [table_name_for(p, settings.table_mode) for p in all_environments()]
        # shared modunda üç ortam aynı tabloyu paylaşır
        tables = list(dict.fromkeys(tables))
    else:
        tables = [settings.table_name]

    for table in tables:
        store = _open_store(settings, table)
        try:
            inserted = bootstrap_catalog(store)
            total = store.count()
        except StorageError as e:
            console.print(f"[bold red]Error initializing {table}:[/] {escape(str(e))}")
            raise typer.Exit(code=1)
        finally:
            store.close()
        if inserted:
            print(f"{table}: inserted {inserted} sample books")
        else:
            print(f"{table}: already contains {total} book(s)")


@app.command("reset-db")
def cli_reset_db(yes: bool = typer.Option(False, "--yes", "-y", help="Onay sormadan sil")):
    """Geçerli ortamın tablosunu sil."""
    settings = Settings()
    table = settings.table_name
    if not yes and not typer.confirm(f"Drop table {table}?"):
        print("Aborted.")
        raise typer.Exit(code=1)
    store = _open_store(settings)
    try:
        store.drop()
    except StorageError as e:
        console.print(f"[bold red]Error dropping {table}:[/] {escape(str(e))}")
        raise typer.Exit(code=1)
    finally:
        store.close()
    print(f"Table {table} dropped.")


@app.command("list")
def cli_list():
    """Tüm kitapları listele."""
    store = _open_store(Settings())
    try:
        store.ensure_schema()
        print_book_list(store.list_all())
    except StorageError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)
    finally:
        store.close()


@app.command("search")
def cli_search(term: str = typer.Argument("", help="Başlık, yazar veya türde aranacak metin")):
    """Başlık, yazar veya türe göre ara."""
    store = _open_store(Settings())
    try:
        store.ensure_schema()
        print_book_list(store.search(term))
    except StorageError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)
    finally:
        store.close()


@app.command("stats")
def cli_stats():
    """Katalog istatistiklerini göster."""
    store = _open_store(Settings())
    try:
        store.ensure_schema()
        print_stats_result(store.statistics())
    except StorageError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)
    finally:
        store.close()


@app.command("env")
def cli_env():
    """Etkin ortam profilini göster."""
    settings = Settings()
    print_environment(settings.profile, settings.table_name)


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Dinlenecek adres"),
    port: Optional[int] = typer.Option(None, "--port", help="Dinlenecek port"),
    open_browser: bool = typer.Option(False, "--open", help="Tarayıcıda aç"),
):
    """Web arayüzünü ve API'yi uvicorn ile başlat."""
    settings = Settings()
    host = host or settings.api_host
    port = port or settings.api_port
    url = f"http://{'127.0.0.1' if host == '0.0.0.0' else host}:{port}"
    print(f"Starting web UI on {url}")
    if open_browser:
        webbrowser.open(url)
    subprocess.run([
        sys.executable, "-m", "uvicorn", "biblioteca.api:create_app", "--factory",
        "--host", host, "--port", str(port),
    ])


def main() -> None:
    app()


if __name__ == "__main__":
    main()
