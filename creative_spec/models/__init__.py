"""Data models."""

from .ad_copy import AdCopy
from .asset import AssetReference
from .brief import SLOT_ROLES, Brief, UTMParameters
from .draft import CreativeDraft
from .export import ExportMeta, ExportSnapshot
from .identity import IdentityRecord, IdentityVerification, VerificationStatus
from .preview import PreviewSettings
from .result import Ok, Rejected, Result, Unreachable, failure_message
from .state import GenerationState, PersistenceState, ShareState

__all__ = [
    "AdCopy",
    "AssetReference",
    "SLOT_ROLES",
    "Brief",
    "UTMParameters",
    "CreativeDraft",
    "ExportMeta",
    "ExportSnapshot",
    "IdentityRecord",
    "IdentityVerification",
    "VerificationStatus",
    "PreviewSettings",
    "Ok",
    "Rejected",
    "Result",
    "Unreachable",
    "failure_message",
    "GenerationState",
    "PersistenceState",
    "ShareState",
]
