"""Drive-time coverage services."""

from .cache import CoverageCache, build_fingerprint
from .isochrone_client import MapboxIsochroneClient, ProviderConfigurationError
from .service import (
    CoverageCalculator,
    CoverageResult,
    CoverageValidationError,
    get_coverage_cache,
    get_coverage_calculator,
)

__all__ = [
    "CoverageCache",
    "build_fingerprint",
    "MapboxIsochroneClient",
    "ProviderConfigurationError",
    "CoverageCalculator",
    "CoverageResult",
    "CoverageValidationError",
    "get_coverage_cache",
    "get_coverage_calculator",
]
