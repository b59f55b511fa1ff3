"""Execution - the content and media-upload import pipelines."""

from .media_import import MediaImportPipeline
from .pipeline import ImportPipeline

__all__ = ["ImportPipeline", "MediaImportPipeline"]
