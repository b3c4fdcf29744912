"""Deployment environment profiles.

Each environment owns its own catalog table (``libros_dev``, ``libros_staging``,
``libros_prod``) and a display badge shown by the web page. Unknown
environment names fall back to the development profile.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

TABLE_BASE = "libros"
DEFAULT_ENVIRONMENT = "development"


@dataclass(frozen=True)
class EnvironmentProfile:
    environment: str
    name: str
    badge_color: str
    badge_text: str
    table_prefix: str
    features: Mapping[str, bool] = field(default_factory=dict)

    @property
    def table(self) -> str:
        return f"{TABLE_BASE}_{self.table_prefix}"

    def to_dict(self) -> Dict[str, object]:
        return {
            "environment": self.environment,
            "name": self.name,
            "badge_color": self.badge_color,
            "badge_text": self.badge_text,
            "table_prefix": self.table_prefix,
            "table": self.table,
            "features": dict(self.features),
        }


def _profile(environment: str, name: str, badge_color: str, badge_text: str, table_prefix: str,
             **features: bool) -> EnvironmentProfile:
    return EnvironmentProfile(
        environment=environment,
        name=name,
        badge_color=badge_color,
        badge_text=badge_text,
        table_prefix=table_prefix,
        features=MappingProxyType(features),
    )


_PROFILES: Dict[str, EnvironmentProfile] = {
    "development": _profile(
        "development", "Desarrollo", "#FFA500", "DEV", "dev",
        debug=True, analytics=False, email_notifications=False, auto_backup=False,
    ),
    "staging": _profile(
        "staging", "Staging", "#FFD700", "STAGING", "staging",
        debug=True, analytics=True, email_notifications=False, auto_backup=True,
    ),
    "production": _profile(
        "production", "Producción", "#28A745", "PROD", "prod",
        debug=False, analytics=True, email_notifications=True, auto_backup=True,
    ),
}


@lru_cache(maxsize=32)
def resolve_environment(name: Optional[str]) -> EnvironmentProfile:
    """Ortam adını bir profile eşle; bilinmeyen adlar development'a düşer."""
    key = (name or "").strip().lower()
    profile = _PROFILES.get(key)
    if profile is None:
        if key:
            logger.warning(f"Unknown environment '{name}', falling back to '{DEFAULT_ENVIRONMENT}'")
        profile = _PROFILES[DEFAULT_ENVIRONMENT]
    return profile


def table_name_for(profile: EnvironmentProfile, mode: str = "environment") -> str:
    """``environment`` modunda ortam tablosunu, ``shared`` modunda ortak tabloyu döndür."""
    if (mode or "").strip().lower() == "shared":
        return TABLE_BASE
    return profile.table


def all_environments() -> List[EnvironmentProfile]:
    return list(_PROFILES.values())
