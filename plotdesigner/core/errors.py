"""Error taxonomy for field design operations."""


class FieldDesignError(Exception):
    """Base class for errors scoped to one design session."""


class InvalidFormatError(FieldDesignError, ValueError):
    """Raised when an imported boundary document cannot be used."""


class NoBoundaryError(FieldDesignError):
    """Raised when a plot layout is requested without a valid boundary."""

    def __init__(self, message: str = "draw or import a boundary before generating plots") -> None:
        super().__init__(message)
