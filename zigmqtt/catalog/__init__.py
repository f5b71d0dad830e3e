"""
Capability catalog: declarative per-model device descriptions.
"""

from zigmqtt.catalog.loader import Catalog, default_catalog, load_catalog
from zigmqtt.catalog.models import (
    CatalogEntry,
    EventSpec,
    PropertyMetadata,
    PropertySpec,
    identity,
)

__all__ = [
    "Catalog",
    "CatalogEntry",
    "EventSpec",
    "PropertyMetadata",
    "PropertySpec",
    "default_catalog",
    "identity",
    "load_catalog",
]
