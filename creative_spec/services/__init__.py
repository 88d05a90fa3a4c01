"""Services for assets, identity, creative sets and export."""

from .assets import AssetIngestionService, read_dimensions
from .creative_sets import CreativeSet, extract_set_name, parse_creative_sets
from .export import AssetResolutionError, Bundle, BundleAssembler, BundleError
from .identity import IdentityVerifier, derive_identity_fallback

__all__ = [
    "AssetIngestionService",
    "read_dimensions",
    "CreativeSet",
    "extract_set_name",
    "parse_creative_sets",
    "AssetResolutionError",
    "Bundle",
    "BundleAssembler",
    "BundleError",
    "IdentityVerifier",
    "derive_identity_fallback",
]
