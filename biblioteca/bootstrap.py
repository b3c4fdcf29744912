import logging

from biblioteca.book import SEED_BOOKS
from biblioteca.store import CatalogStore

logger = logging.getLogger(__name__)


def bootstrap_catalog(store: CatalogStore) -> int:
    """Tabloyu gerekirse oluştur ve boşsa örnek kitapları ekle.

    Dolu bir tabloya asla dokunmaz. Eklenen satır sayısını döndürür.
    """
    logger.info(f"Verifying table '{store.table}' ({store.backend_name})")
    store.ensure_schema()

    count = store.count()
    if count > 0:
        logger.info(f"Table '{store.table}' already contains {count} book(s)")
        return 0

    inserted = store.seed(SEED_BOOKS)
    logger.info(f"Table '{store.table}' was empty, inserted {inserted} sample book(s)")
    return inserted
