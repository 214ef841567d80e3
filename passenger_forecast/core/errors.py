from __future__ import annotations


class DataIntegrityError(ValueError):
    """Raised when input records or the monthly series cannot be trusted."""


class EvaluationError(ValueError):
    """Raised when forecasts cannot be scored against the holdout window."""
