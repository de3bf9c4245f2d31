"""Exceptions raised by the collection pipeline services"""


class CollectError(Exception):
    """Base class for pipeline failures"""


class FetchError(CollectError):
    """The page-rendering proxy did not return the page"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(CollectError):
    """A required credential or setting is missing"""


class ExtractionError(CollectError):
    """The language model returned nothing usable"""


class ValidationError(CollectError):
    """Caller input is missing or empty"""


class StorageError(CollectError):
    """A database write the whole batch depends on failed"""


class OutputParseError(ExtractionError):
    """The model answered, but not with the expected JSON"""
