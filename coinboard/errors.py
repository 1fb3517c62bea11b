class AssetListUnavailableError(RuntimeError):
    """Raised when the upstream market listing could not be loaded."""


class SeriesUnavailableError(RuntimeError):
    """Raised when a detail series has no data to show."""
