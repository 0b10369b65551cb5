"""
Response assembly: error pages, diagnostic pages, and image responses.

Every response goes through the request's sink. Image responses carry a
``Status``/``Content-type`` header block unless the request asked for RAW
output; error pages always carry headers.
"""

import logging
from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape

from ..constants import (
    ERROR_STATUS_CODES,
    FALLBACK_ERROR_STATUS,
    HTML_CONTENT_TYPE,
    HTTP_STATUS_REASONS,
    ErrorMessages,
    Param,
    ServerConfig,
)
from ..models.responses import ErrorOutcome, ImageOutcome, RequestOutcome
from ..transport import Request, ResponseSink
from . import raster_io
from .bbox import parse_bbox

logger = logging.getLogger(__name__)


def _default_environment() -> Environment:
    return Environment(
        loader=PackageLoader("image_subsetter", "templates"),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def normalize_status(status: int) -> int:
    """Map unknown error codes to the fallback status."""
    return status if status in ERROR_STATUS_CODES else FALLBACK_ERROR_STATUS


class ResponseBuilder:
    """Writes request outcomes and diagnostic pages to response sinks."""

    def __init__(self, environment: Environment | None = None) -> None:
        self._env = environment or _default_environment()

    def write_outcome(self, outcome: RequestOutcome, request: Request) -> None:
        """Write a request's single outcome. Consumes (and removes) any temp artifact."""
        if isinstance(outcome, ErrorOutcome):
            self.write_error(request.sink, outcome.status, outcome.message)
        else:
            self._write_image(outcome, request)

    def write_error(self, sink: ResponseSink, status: int, message: str) -> None:
        status = normalize_status(status)
        reason = HTTP_STATUS_REASONS[status]
        page = self._env.get_template("error.html").render(reason=reason, message=message)
        sink.start_response(status, [("Content-type", HTML_CONTENT_TYPE)])
        sink.write(page.encode("utf-8"))

    def write_diagnostics(self, request: Request, active: Any = None) -> None:
        """
        Write the verbose debug page: environment, form values, and a bbox parse echo.

        Args:
            request: Current request
            active: ActiveDataset slot, reported on the page when given
        """
        raw_bbox = request.get(Param.BBOX)
        bbox, count = parse_bbox(raw_bbox)

        page = self._env.get_template("debug.html").render(
            title=ServerConfig.PAGE_TITLE,
            environ=sorted(request.environ.items()),
            query_string=None if request.persistent else request.query_string,
            form_items=request.form_items(),
            bbox_supplied=bool(raw_bbox),
            bbox_count=count,
            bbox=bbox,
            dataset_path=getattr(active, "path", None),
            dataset_open=getattr(active, "is_open", False),
            last_error=getattr(active, "last_error", None),
        )
        request.sink.start_response(200, [("Content-type", HTML_CONTENT_TYPE)])
        request.sink.write(page.encode("utf-8"))

    def _write_image(self, outcome: ImageOutcome, request: Request) -> None:
        try:
            body = outcome.body
            if outcome.artifact is not None:
                body = raster_io.read_artifact(outcome.artifact)
                if body is None:
                    self.write_error(request.sink, 500, ErrorMessages.RENDER_FAILURE)
                    return

            # RAW skips the header block, for piping the image straight to a file
            if Param.RAW not in request.params:
                request.sink.start_response(200, [("Content-type", outcome.content_type)])
            request.sink.write(body)
        finally:
            if outcome.artifact is not None:
                raster_io.remove_artifact(outcome.artifact)
