"""API clients for external services."""

from .gateway import CreativeGateway, GeneratedCopy, SavedDraft

__all__ = ["CreativeGateway", "GeneratedCopy", "SavedDraft"]
