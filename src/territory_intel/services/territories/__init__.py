"""Territory and representative services."""

from .representatives import RepresentativeStore, get_representative_store
from .store import (
    TerritoryNotFoundError,
    TerritoryStore,
    UnknownTerritoryError,
    get_territory_store,
)

__all__ = [
    "TerritoryStore",
    "TerritoryNotFoundError",
    "UnknownTerritoryError",
    "get_territory_store",
    "RepresentativeStore",
    "get_representative_store",
]
