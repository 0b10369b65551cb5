"""
Dataset resolution for the three configuration modes.

Single mode serves the raster opened at startup. DynamicID and
ScriptResolved modes turn the request into a raster path and open it
through the single-slot cache held in the server state.
"""

import logging
import runpy
from collections.abc import Callable
from typing import Any

from ..constants import RESOLVER_ENTRY_POINT, ErrorMessages, ModeKind, Param
from ..errors import (
    BadRequest,
    ConfigurationError,
    ConfigurationFailure,
    DatasetUnavailable,
    InternalError,
    NotFound,
)
from ..models.config import DynamicIDMode, ScriptMode, SingleMode
from ..transport import Request
from .state import ServerState

logger = logging.getLogger(__name__)


def load_resolver(script_path: str) -> Callable[[str], object]:
    """
    Evaluate a resolver script and return its query handler.

    Raises:
        ConfigurationError: the script can't be run or has no callable entry point
    """
    try:
        namespace = runpy.run_path(script_path)
    except Exception as e:
        raise ConfigurationError(ErrorMessages.SCRIPT_UNREADABLE.format(script_path, e)) from e

    handler = namespace.get(RESOLVER_ENTRY_POINT)
    if not callable(handler):
        raise ConfigurationError(
            ErrorMessages.SCRIPT_NO_ENTRY_POINT.format(script_path, RESOLVER_ENTRY_POINT)
        )
    return handler


def _open_path(state: ServerState, path: str) -> Any:
    dataset = state.active.open(path)
    if dataset is None:
        raise DatasetUnavailable(ErrorMessages.NO_SUCH_DATASET)
    return dataset


def resolve_single(mode: SingleMode, request: Request, state: ServerState) -> Any:
    if not state.active.is_open or state.active.path != mode.filename:
        logger.error("Single dataset not open")
        raise ConfigurationFailure(ErrorMessages.DATASET_FAILURE)
    return state.active.handle


def resolve_dynamic(mode: DynamicIDMode, request: Request, state: ServerState) -> Any:
    identifier = request.get(Param.ID)
    if not identifier:
        raise BadRequest(ErrorMessages.MISSING_ID)
    return _open_path(state, mode.path_for(identifier))


def resolve_script(mode: ScriptMode, request: Request, state: ServerState) -> Any:
    try:
        path = mode.resolver(request.query_string)
    except Exception as e:
        logger.warning(f"Resolver {mode.script_path} failed: {e}")
        raise InternalError(ErrorMessages.RASTER_LOOKUP_FAILURE) from e

    if not isinstance(path, str) or not path:
        raise NotFound(ErrorMessages.INVALID_RASTER_REQUEST)
    return _open_path(state, path)


def resolve(request: Request, state: ServerState) -> Any:
    """
    Find and open the raster a request refers to.

    Returns:
        Open rasterio dataset

    Raises:
        RequestError: with the status the failure is reported as
    """
    mode = state.mode
    if mode.kind == ModeKind.SINGLE:
        return resolve_single(mode, request, state)
    elif mode.kind == ModeKind.DYNAMIC_ID:
        return resolve_dynamic(mode, request, state)
    elif mode.kind == ModeKind.SCRIPT:
        return resolve_script(mode, request, state)
    raise ConfigurationFailure(ErrorMessages.CONFIGURATION_FAILURE)
