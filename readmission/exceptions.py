"""
Pipeline Errors.

Error taxonomy shared by the encoders, the model registry and the
scoring services.
"""


class UnknownCategoryError(ValueError):
    """A categorical value is outside the training-time vocabulary."""

    def __init__(self, field: str, value: object, allowed: tuple[str, ...] = ()):
        self.field = field
        self.value = value
        self.allowed = tuple(allowed)
        message = f"Unknown level {value!r} for field '{field}'"
        if self.allowed:
            message += f" (allowed: {', '.join(self.allowed)})"
        super().__init__(message)


class InvalidRecordError(ValueError):
    """A raw record is missing a field or carries a non-numeric count."""


class SchemaMismatchError(RuntimeError):
    """Encoded data does not match the layout a fitted model expects.

    Always a drift or programming defect: never caught by the scoring
    services.
    """


class ModelNotLoadedError(RuntimeError):
    """The requested model was never loaded into the registry."""

    def __init__(self, model_id: str, detail: str = ""):
        self.model_id = model_id
        message = f"Model '{model_id}' is not loaded"
        if detail:
            message += f": {detail}"
        super().__init__(message)
