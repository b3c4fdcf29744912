import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import APIRouter, Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from biblioteca.bootstrap import bootstrap_catalog
from biblioteca.config import Settings
from biblioteca.errors import CatalogError, StorageError, UploadRejected
from biblioteca.render import render_catalog_page
from biblioteca.store import CatalogStore, create_store
from biblioteca.uploads import placeholder_image_url, validate_image_upload
from biblioteca.validators import validate_availability

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Modeller ---
class BookCreateModel(BaseModel):
    """Yeni kitap isteği; zorunlu alan kontrolü depoda yapılır (422 yerine 400)."""
    model_config = ConfigDict(populate_by_name=True)

    titulo: Optional[str] = None
    autor: Optional[str] = None
    anio: Union[int, str, None] = Field(default=None, alias="año")
    genero: Optional[str] = None
    isbn: Optional[str] = None


class AvailabilityModel(BaseModel):
    disponible: Optional[bool] = None


def _envelope(data, message: Optional[str] = None, **extra) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    body.update(extra)
    body["data"] = data
    return body


# --- Bağımlılıklar ---
def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# --- API Uç Noktaları ---
@router.get("/health")
def health(request: Request, store: CatalogStore = Depends(get_store)):
    """Docker ve compose sağlık kontrolleri için hafif sağlık uç noktası."""
    profile = request.app.state.profile
    return {
        "status": "healthy",
        "environment": profile.environment,
        "table": store.table,
        "db": store.is_healthy(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/", response_class=HTMLResponse)
def index(request: Request, store: CatalogStore = Depends(get_store),
          settings: Settings = Depends(get_settings)):
    """Kataloğu sunucu tarafında oluşturulmuş HTML olarak döndür."""
    return render_catalog_page(request, store.list_all(), request.app.state.profile, store.statistics(),
                               title=settings.app_name)


@router.get("/api/environment")
def environment_info(request: Request, store: CatalogStore = Depends(get_store),
                     settings: Settings = Depends(get_settings)):
    profile = request.app.state.profile
    return _envelope({
        "environment": profile.environment,
        "name": profile.name,
        "badge_color": profile.badge_color,
        "badge_text": profile.badge_text,
        "features": dict(profile.features),
        "table": store.table,
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@router.get("/api/libros")
def list_books(store: CatalogStore = Depends(get_store)):
    """Tüm kitapları kimlik sırasıyla listele."""
    books = store.list_all()
    return _envelope(
        [b.to_dict() for b in books],
        total=len(books),
        disponibles=sum(1 for b in books if b.disponible),
    )


@router.get("/api/libros/{book_id}")
def get_book(book_id: int, store: CatalogStore = Depends(get_store)):
    return _envelope(store.get_by_id(book_id).to_dict())


@router.post("/api/libros", status_code=201)
def add_book(payload: BookCreateModel, store: CatalogStore = Depends(get_store)):
    """Kataloğa yeni bir kitap ekle; kitap her zaman müsait olarak başlar."""
    book = store.create(payload.model_dump(by_alias=True))
    logger.info(f"Book {book.id} added to {store.table}")
    return _envelope(book.to_dict(), "Libro agregado exitosamente")


@router.put("/api/libros/{book_id}")
def update_availability(book_id: int, payload: AvailabilityModel, store: CatalogStore = Depends(get_store)):
    """Bir kitabın müsaitlik durumunu güncelle (ödünç ver / iade al)."""
    disponible = validate_availability(payload.disponible)
    book = store.set_availability(book_id, disponible)
    return _envelope(book.to_dict(), "Estado actualizado correctamente")


@router.delete("/api/libros/{book_id}")
def delete_book(book_id: int, store: CatalogStore = Depends(get_store)):
    book = store.delete(book_id)
    logger.info(f"Book {book.id} deleted from {store.table}")
    return _envelope(book.to_dict(), "Libro eliminado correctamente")


@router.post("/api/libros/{book_id}/imagen")
async def upload_image(book_id: int, imagen: Optional[UploadFile] = File(default=None),
                       store: CatalogStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    """Kitap resmini doğrula ve yer tutucu URL'yi kayda yaz."""
    if imagen is None:
        raise UploadRejected("No se proporcionó ninguna imagen")
    # Sınırı aştığını anlamak için bir bayt fazlası yeterli
    content = await imagen.read(settings.max_upload_size + 1)
    validate_image_upload(imagen.content_type, len(content), settings.max_upload_size)
    url = placeholder_image_url(settings.image_placeholder_url, book_id, imagen.filename)
    book = await run_in_threadpool(store.set_image, book_id, url)
    return _envelope(book.to_dict(), "Imagen actualizada correctamente")


@router.get("/api/estadisticas")
def get_statistics(store: CatalogStore = Depends(get_store)):
    return _envelope(store.statistics())


@router.get("/api/buscar")
def search_books(q: str = Query("", description="Başlık, yazar veya türde aranacak metin"),
                 store: CatalogStore = Depends(get_store)):
    books = store.search(q)
    return _envelope([b.to_dict() for b in books], total=len(books))


# --- Hata İşleyicileri ---
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Datos de entrada inválidos", "details": jsonable_encoder(exc.errors())},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = "Ruta no encontrada" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": error},
                        headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500,
                        content={"success": False, "error": str(exc) or "Error interno del servidor"})


def _log_startup(settings: Settings, store: CatalogStore) -> None:
    profile = settings.profile
    enabled = ", ".join(name for name, on in profile.features.items() if on) or "none"
    logger.info(f"{settings.app_name} v{settings.app_version} starting")
    logger.info(f"Environment: {profile.name} [{profile.badge_text}], port {settings.api_port}")
    logger.info(f"Storage: {store.backend_name}, table '{store.table}'")
    logger.info(f"Enabled features: {enabled}")


def create_app(settings: Optional[Settings] = None, store: Optional[CatalogStore] = None) -> FastAPI:
    """Uygulamayı açık ayarlar ve depo ile oluştur."""
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = store or create_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log_startup(settings, store)
        # Başlangıçta veritabanına ulaşılamazsa sunucu başlamaz
        try:
            await run_in_threadpool(bootstrap_catalog, store)
        except StorageError as e:
            logger.critical(f"Fatal error initializing database (code={e.code}): {e}")
            raise
        try:
            yield
        finally:
            # Kapanışta bağlantı havuzunu boşalt
            logger.info("Shutting down, closing storage")
            store.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.profile = settings.profile

    # 1KB'den büyük yanıtlar için GZip sıkıştırması
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app
