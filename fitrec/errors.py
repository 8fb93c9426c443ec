class FitEngineError(Exception):
    """Base class for failures surfaced by the fit recommendation engine."""


class ConfigurationError(FitEngineError):
    """No usable size chart: unknown category without a fallback, or a malformed chart source."""


class InsufficientDataError(FitEngineError):
    def __init__(self, message: str, guidance: str | None = None) -> None:
        super().__init__(message)
        self.guidance = guidance or "Provide at least one body measurement used by this garment's size chart."


class UnknownCategoryError(ConfigurationError):
    """Requested garment category has no chart and no fallback is configured."""
