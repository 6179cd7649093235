"""Exception types raised by ChromoReader."""


class ChromoReaderError(Exception):
    """Base class for all ChromoReader errors."""


class ChunkingConfigError(ChromoReaderError, ValueError):
    """Raised when chunk size, overlap or concurrency settings are unusable."""


class SummarizationError(ChromoReaderError):
    """Raised when at least one chunk summary could not be generated."""


class DocumentRecordError(ChromoReaderError):
    """Raised when a prepared document record cannot be read or is malformed."""


class NoAnswerError(ChromoReaderError):
    """Raised by the pipeline when an exploration session produced no usable answer."""
