"""Exception types raised by the research pipeline stages."""


class ConfigurationError(Exception):
    """Raised when a required API key or setting is missing."""


class AggregationError(Exception):
    """Raised when no usable corpus can be built (homepage unavailable)."""


class ExtractionError(Exception):
    """Raised when the extraction call fails or returns an invalid payload."""


class StoreError(Exception):
    """Raised when a competitor record cannot be read or written."""


class ResearchInProgressError(Exception):
    """Raised when a job is submitted for a competitor that is already processing."""
