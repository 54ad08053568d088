"""Build-time photo gallery pipeline: variants, metadata and JSON manifests."""

from .config import PipelineSettings
from .errors import GallerySyncError

__version__ = "0.1.0"

__all__ = ["GallerySyncError", "PipelineSettings", "__version__"]
