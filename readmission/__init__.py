"""30-day hospital readmission scoring pipeline."""

__version__ = "1.0.0"
