"""Services layer - Business logic

Services are initialized with their dependencies and accessed through dependency injection.
"""

from .collection_service import CollectionService, SaveResult
from .content_fetcher import ContentFetcher
from .errors import (
    CollectError,
    ConfigurationError,
    ExtractionError,
    FetchError,
    OutputParseError,
    StorageError,
    ValidationError,
)
from .extraction import EventExtractor, ExtractionConfig, ExtractionResult
from .pipeline import CollectPipeline, ErrorKind, PipelineResult
from .robots import PermissionDecision, RobotsChecker
from .session_service import SessionService

__all__ = [
    "CollectError",
    "CollectPipeline",
    "CollectionService",
    "ConfigurationError",
    "ContentFetcher",
    "ErrorKind",
    "EventExtractor",
    "ExtractionConfig",
    "ExtractionError",
    "ExtractionResult",
    "FetchError",
    "OutputParseError",
    "PermissionDecision",
    "PipelineResult",
    "RobotsChecker",
    "SaveResult",
    "SessionService",
    "StorageError",
    "ValidationError",
]
