"""Data loading, cleaning and synthetic generation modules."""
from .cleaning import (
    LABEL_COLUMN,
    RAW_COLUMNS,
    clean_dataset,
    load_dataset,
    quality_summary,
    split_dataset,
)
from .generator import EncounterRecord, ReadmissionDataGenerator

__all__ = [
    "LABEL_COLUMN",
    "RAW_COLUMNS",
    "clean_dataset",
    "load_dataset",
    "quality_summary",
    "split_dataset",
    "EncounterRecord",
    "ReadmissionDataGenerator",
]
