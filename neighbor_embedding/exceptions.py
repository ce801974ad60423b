"""Exception types raised by the embedding engine."""


class EmbeddingError(Exception):
    """Base class for all embedding errors."""


class ConfigurationError(EmbeddingError, ValueError):
    """Invalid parameters or an operation called in the wrong state."""


class DimensionError(EmbeddingError, ValueError):
    """Matrix or vector shapes that do not fit together."""
