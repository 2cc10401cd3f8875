"""
pipeline_errors.py
Failure kinds for the shooting-incident pipeline.

Each stage raises its own error type so a caller (or a test) can tell which
stage stopped the run. All of them are fatal: nothing retries.
"""


class ShootingDataError(Exception):
    """Base class for every pipeline failure."""


class RetrievalError(ShootingDataError):
    """The source CSV could not be fetched or is not tabular."""


class SchemaMismatchError(ShootingDataError):
    """The raw table does not have the expected column layout."""


class MalformedRowError(ShootingDataError):
    """A present value in a typed column could not be parsed."""

    def __init__(self, row: int, column: str, value):
        self.row = row
        self.column = column
        self.value = value
        super().__init__(f"Row {row}: cannot parse {column}={value!r}")
