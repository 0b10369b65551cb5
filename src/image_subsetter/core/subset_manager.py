"""
Subset Manager: central orchestrator for request handling.

Owns the server state (configuration mode plus the single open dataset) and
runs the per-request pipeline: parameter validation, dataset resolution,
window validation, rendering, and response writing.
"""

import logging
from pathlib import Path

from ..constants import ErrorMessages, ModeKind, Param
from ..errors import (
    DatasetUnavailable,
    RenderError,
    RequestError,
    WindowOutsideRaster,
)
from ..models.config import ServerSettings
from ..models.responses import ErrorOutcome, ImageOutcome, RequestOutcome
from ..transport import Request
from . import raster_io
from .dataset_cache import ActiveDataset
from .resolver import resolve
from .response_builder import ResponseBuilder
from .state import ServerState
from .validation import validate_params, validate_window

logger = logging.getLogger(__name__)


class SubsetManager:
    """Central manager for raster subset requests."""

    def __init__(
        self,
        settings: ServerSettings,
        active: ActiveDataset | None = None,
        builder: ResponseBuilder | None = None,
    ) -> None:
        self.state = ServerState(settings=settings, active=active or ActiveDataset())
        self.builder = builder or ResponseBuilder()

    @property
    def settings(self) -> ServerSettings:
        return self.state.settings

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Open the single dataset up front; later requests report 500 if this fails."""
        mode = self.settings.mode
        logger.info(mode.describe())
        if mode.kind == ModeKind.SINGLE:
            if self.state.active.open(mode.filename) is None:
                logger.error(ErrorMessages.SINGLE_OPEN_FAILED.format(mode.filename))

    def close(self) -> None:
        self.state.active.close()

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle(self, request: Request) -> None:
        """Answer one request: diagnostic page in verbose mode, outcome otherwise."""
        if request.get(Param.DEBUG):
            self.builder.write_diagnostics(request, self.state.active)
            return

        outcome = self.process(request)
        if isinstance(outcome, ErrorOutcome):
            logger.warning(f"Request '{request.query_string}' failed: {outcome.to_text()}")
        self.builder.write_outcome(outcome, request)

    def process(self, request: Request) -> RequestOutcome:
        """Run the request pipeline and return its single outcome."""
        try:
            size, bbox = validate_params(request.get(Param.SIZE), request.get(Param.BBOX))
            dataset = resolve(request, self.state)
            validated = validate_window(
                size, bbox, dataset.width, dataset.height, self.settings.mode.kind
            )
            artifact = raster_io.render_window(
                dataset, validated.window, validated.size, self.settings.temp_dir
            )
        except DatasetUnavailable as e:
            if self.settings.missing_path:
                return self._placeholder_outcome(e)
            return ErrorOutcome(status=e.status, message=e.message)
        except RequestError as e:
            return ErrorOutcome(status=e.status, message=e.message)
        except WindowOutsideRaster as e:
            logger.info(f"{e}")
            return ErrorOutcome(status=400, message=ErrorMessages.BAD_BBOX_VALUES)
        except RenderError as e:
            logger.error(f"Render failed: {e}")
            return ErrorOutcome(status=500, message=ErrorMessages.RENDER_FAILURE)

        return ImageOutcome(artifact=artifact)

    def _placeholder_outcome(self, error: DatasetUnavailable) -> RequestOutcome:
        """Serve the configured Missing image in place of a dataset that did not open."""
        try:
            body = Path(self.settings.missing_path).read_bytes()
        except OSError as e:
            logger.error(f"Can't read missing image {self.settings.missing_path}: {e}")
            return ErrorOutcome(status=error.status, message=error.message)
        return ImageOutcome(body=body)
