"""
Structured Logging Module.

Wraps the standard logging package with keyword context fields, JSON or
text output and operation timers for the training and scoring pipeline.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class PipelineLogger:
    """
    Structured logger for the readmission pipeline.

    Keyword arguments passed to any log call become context fields: JSON
    keys in "json" format, trailing key=value pairs in "text" format.
    Durations from timer() and values from log_metrics() are kept for
    get_metrics_summary().
    """

    def __init__(
        self,
        name: str = "readmission",
        level: str = "INFO",
        format: str = "text",
        log_file: Optional[str] = None,
    ):
        """
        Initialize the logger.

        Args:
            name: Logger name.
            level: Logging level (DEBUG, INFO, WARNING, ERROR).
            format: Output format ('json' or 'text').
            log_file: Optional path of a log file mirroring the console.
        """
        if level.upper() not in LEVELS:
            raise ValueError(f"Unknown log level '{level}'. Choose from {LEVELS}")
        if format not in ("json", "text"):
            raise ValueError(f"Unknown log format '{format}'")

        self.name = name
        self.level = level.upper()
        self.format = format
        self.log_file = log_file

        self._logger = self._setup_logger()
        self._metrics: dict[str, list[float]] = {}
        self._start_times: dict[str, float] = {}

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger(self.name)
        logger.setLevel(getattr(logging, self.level))

        # Rebuilding a logger of the same name replaces its handlers
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        if self.format == "json":
            formatter: logging.Formatter = JsonFormatter()
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if self.log_file:
            path = Path(self.log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        return logger

    @property
    def logger(self) -> logging.Logger:
        """The underlying stdlib logger."""
        return self._logger

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log("debug", message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log("info", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log("warning", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log("error", message, **kwargs)

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        log_func = getattr(self._logger, level)
        if self.format == "json":
            log_func(message, extra={"extra_fields": kwargs} if kwargs else {})
        else:
            if kwargs:
                context = " ".join(f"{k}={v}" for k, v in kwargs.items())
                message = f"{message} | {context}"
            log_func(message)

    def start_timer(self, operation: str) -> None:
        self._start_times[operation] = time.perf_counter()

    def stop_timer(self, operation: str) -> float:
        """Stop timing an operation and return its duration in seconds."""
        started = self._start_times.pop(operation, None)
        if started is None:
            return 0.0
        duration = time.perf_counter() - started
        self._metrics.setdefault(operation, []).append(duration)
        return duration

    @contextmanager
    def timer(self, operation: str, log_result: bool = True) -> Iterator[None]:
        """Time the enclosed block, logging its duration on exit."""
        self.start_timer(operation)
        try:
            yield
        finally:
            duration = self.stop_timer(operation)
            if log_result:
                self.info(f"{operation} completed", duration_seconds=round(duration, 3))

    def log_metrics(self, **metrics: float) -> None:
        for name, value in metrics.items():
            self._metrics.setdefault(name, []).append(value)
        self.info("Metrics recorded", **metrics)

    def get_metrics_summary(self) -> dict[str, dict[str, float]]:
        """Count, mean, min, max and last value per recorded metric."""
        summary = {}
        for name, values in self._metrics.items():
            if values:
                summary[name] = {
                    "count": len(values),
                    "mean": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                    "last": values[-1],
                }
        return summary

    def log_evaluation_result(
        self,
        model_id: str,
        n_records: int,
        skipped: int,
        accuracy: float,
        auc: float,
        **extra: Any,
    ) -> None:
        """Log the headline numbers of one model evaluation."""
        self.info(
            "Evaluation completed",
            model_id=model_id,
            scored_records=n_records,
            skipped_records=skipped,
            accuracy=round(accuracy, 4),
            auc=round(auc, 4),
            **extra,
        )

    def log_skipped_record(self, index: int, reason: str) -> None:
        self.warning("Skipped record", record_index=index, reason=reason)


class JsonFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def get_logger(
    name: str = "readmission",
    level: str = "INFO",
    format: str = "text",
    log_file: Optional[str] = None,
) -> PipelineLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name.
        level: Logging level.
        format: Output format ('json' or 'text').
        log_file: Path to log file.

    Returns:
        Configured PipelineLogger instance.
    """
    return PipelineLogger(name=name, level=level, format=format, log_file=log_file)
