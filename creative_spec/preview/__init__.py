"""Preview surfaces that can be captured into the export bundle."""

from .surface import CardPreviewSurface, PreviewCaptureError, PreviewSurface

__all__ = ["CardPreviewSurface", "PreviewCaptureError", "PreviewSurface"]
