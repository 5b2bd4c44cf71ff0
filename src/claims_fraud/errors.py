"""Exceptions raised by the claims fraud pipeline."""


class ClaimsFraudError(Exception):
    """Base class for all pipeline errors."""


class LoadError(ClaimsFraudError):
    """Input file is missing, empty or malformed."""


class SchemaError(ClaimsFraudError):
    """A referenced column is absent or has an incompatible type."""


class UnseenCategoryError(SchemaError):
    """A categorical value at prediction time was never seen during fit."""

    def __init__(self, column, values):
        self.column = column
        self.values = list(values)
        super().__init__(
            f"Column '{column}' has categories unseen at fit time: {self.values}"
        )


class InvalidProportionError(ClaimsFraudError, ValueError):
    """Split proportion outside the open interval (0, 1)."""


class InsufficientDataError(ClaimsFraudError):
    """Training partition too small or single-class."""
