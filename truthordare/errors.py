"""Error taxonomy shared by the storage, repository and service layers.

Routes map ``ValueError`` to 400 and anything derived from ``TruthOrDareError``
to 500; nothing below the routes swallows these.
"""
from __future__ import annotations


class TruthOrDareError(Exception):
    """Base class for every failure raised by this package."""


class ConfigurationError(TruthOrDareError):
    """Missing or invalid settings (env / config.yaml). Fatal at startup."""


class DatabaseConnectionError(TruthOrDareError):
    """The database could not be opened or reached."""


class QueryError(TruthOrDareError):
    """A read query failed to execute."""


class QueryTimeoutError(QueryError):
    """A statement was interrupted because its deadline passed."""


class MappingError(TruthOrDareError):
    """A result row does not have the expected shape."""


class TransactionError(TruthOrDareError):
    """A step of a write transaction failed; the transaction was rolled back."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
