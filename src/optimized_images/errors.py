from __future__ import annotations


class OptimizedImagesError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(OptimizedImagesError, ValueError):
    """The configured variant list is not a sequence of valid variant records."""


class TransformError(OptimizedImagesError):
    """Base class for outcomes of a single transform request."""


class TransformUnsupported(TransformError):
    """The codec cannot manipulate the source or the target format."""


class TransformUnavailable(TransformError):
    """The asset cannot be transformed at all (not an image, unreadable source)."""


class TransformFailure(TransformError):
    """Rendering or writing a derived image failed."""
