import os
from dataclasses import dataclass, field
from typing import Callable, Optional
from dotenv import load_dotenv

from biblioteca.environment import EnvironmentProfile, resolve_environment, table_name_for

load_dotenv()


def _env(name: str, default: str) -> Callable[[], str]:
    return lambda: os.getenv(name, default)


def _env_int(name: str, default: str) -> Callable[[], int]:
    return lambda: int(os.getenv(name, default))


@dataclass
class Settings:
    # API Ayarları
    api_host: str = field(default_factory=_env("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: int(os.getenv("PORT") or os.getenv("API_PORT", "3000")))

    # Ortam: NODE_ENV eski dağıtımlarla uyumluluk için kabul edilir
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT") or os.getenv("NODE_ENV", "development")
    )

    # Veritabanı Ayarları
    database_url: Optional[str] = field(default_factory=lambda: os.getenv("DATABASE_URL") or None)
    database_pool_size: int = field(default_factory=_env_int("DATABASE_POOL_SIZE", "10"))
    database_sslmode: Optional[str] = field(default_factory=lambda: os.getenv("DATABASE_SSLMODE") or None)
    # memory | sqlite | postgres | auto
    storage_backend: str = field(default_factory=_env("STORAGE_BACKEND", "auto"))
    # environment -> libros_{prefix}, shared -> libros
    table_mode: str = field(default_factory=_env("TABLE_MODE", "environment"))

    # Yükleme Ayarları
    max_upload_size: int = field(default_factory=_env_int("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))
    image_placeholder_url: str = field(
        default_factory=_env("IMAGE_PLACEHOLDER_URL", "https://placehold.co/300x450?text=Libro+{id}")
    )

    # Uygulama Ayarları
    app_name: str = field(default_factory=_env("APP_NAME", "Biblioteca Digital"))
    app_version: str = field(default_factory=_env("APP_VERSION", "2.0"))
    log_level: str = field(default_factory=_env("LOG_LEVEL", "INFO"))

    @property
    def profile(self) -> EnvironmentProfile:
        return resolve_environment(self.environment)

    @property
    def table_name(self) -> str:
        return table_name_for(self.profile, self.table_mode)
