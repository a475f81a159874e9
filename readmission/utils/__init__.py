"""Utility modules for the readmission pipeline."""

from .logging import get_logger, JsonFormatter, PipelineLogger

__all__ = [
    "get_logger",
    "JsonFormatter",
    "PipelineLogger",
]
