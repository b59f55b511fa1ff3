"""Content Importer - bulk import spreadsheet rows into a content tree."""

from .cli import app
from .config import ImporterConfig
from .execution import ImportPipeline, MediaImportPipeline

__version__ = "0.1.0"
__all__ = ["app", "ImporterConfig", "ImportPipeline", "MediaImportPipeline"]
