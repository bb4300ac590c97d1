"""Error types raised by the cervical_risk pipeline."""


class CervicalRiskError(Exception):
    """Base class for all pipeline errors."""


class SchemaError(CervicalRiskError, ValueError):
    """A column of the input file cannot be coerced to numeric."""

    def __init__(self, column: str, detail: str = ""):
        self.column = column
        msg = f"Column '{column}' cannot be coerced to numeric"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class DataError(CervicalRiskError, ValueError):
    """The data cannot support the requested operation (missing target, impossible stratification)."""


class InsufficientNeighborsError(CervicalRiskError):
    """A minority record has fewer same-class neighbours than requested."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Requested {requested} same-class neighbours, only {available} available"
        )


class ModelFitError(CervicalRiskError, RuntimeError):
    """Fitting or predicting with one model failed."""

    def __init__(self, model_name: str, cause: Exception):
        self.model_name = model_name
        self.cause = cause
        super().__init__(f"{model_name} failed: {cause}")
