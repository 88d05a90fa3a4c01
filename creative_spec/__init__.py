"""Creative spec builder - draft a Meta ad creative and export its spec bundle."""

from .app import App, create_app

__all__ = ["App", "create_app"]
