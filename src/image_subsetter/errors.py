"""
Exceptions used throughout image-subsetter.

Request errors carry the HTTP status they are reported with, so the
request pipeline can turn any of them into an error page.
"""


class SubsetterError(Exception):
    """Base exception for image-subsetter."""

    pass


class ConfigurationError(SubsetterError):
    """Startup configuration is missing or invalid. Fatal before the loop starts."""

    pass


class RequestError(SubsetterError):
    """A request failed; reported to the client as an error page."""

    status = 404

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class BadRequest(RequestError):
    """Malformed or out-of-range request parameters."""

    status = 400


class NotFound(RequestError):
    """The requested dataset can't be located or opened."""

    status = 404


class DatasetUnavailable(NotFound):
    """A resolved dataset path did not open."""

    pass


class InternalError(RequestError):
    """Server-side failure while handling a request."""

    status = 500


class ConfigurationFailure(InternalError):
    """The configured mode can't serve requests (e.g. the single dataset never opened)."""

    pass


class RenderError(SubsetterError):
    """The raster engine failed to produce an output image."""

    pass


class WindowOutsideRaster(RenderError):
    """A projection window does not overlap the raster at all."""

    pass
