from functools import lru_cache
from pathlib import Path

import yaml

from legal_clarify.domain.models import DocumentCatalog

CATALOG_PATH = Path(__file__).parent / "document_types.yaml"

def load_document_catalog(path: Path = CATALOG_PATH) -> DocumentCatalog:
    """Reads the document type options and sample documents offered to the user."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return DocumentCatalog.model_validate(raw)

@lru_cache(maxsize=1)
def get_document_catalog() -> DocumentCatalog:
    return load_document_catalog()
