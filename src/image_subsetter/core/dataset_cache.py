"""
Single-slot raster cache keyed by path.

At most one raster handle is open at a time. Asking for the path that is
already open reuses the handle; asking for another path closes the current
handle before opening the new one.
"""

import logging
from collections.abc import Callable
from typing import Any

from . import raster_io

logger = logging.getLogger(__name__)


class ActiveDataset:
    """The one raster handle the server keeps open between requests."""

    def __init__(self, opener: Callable[[str], Any] = raster_io.open_raster) -> None:
        self._opener = opener
        self.path: str | None = None
        self.handle: Any = None
        self.last_error: str | None = None

    @property
    def is_open(self) -> bool:
        return self.handle is not None

    def open(self, path: str) -> Any:
        """
        Return an open handle for path, reusing the current one if the path matches.

        Returns:
            The open dataset, or None if it could not be opened. A failed open
            leaves the slot empty.
        """
        if self.handle is not None and path == self.path:
            return self.handle

        self.close()
        try:
            handle = self._opener(path)
        except Exception as e:
            self.last_error = str(e)
            logger.warning(f"Can't open dataset {path}: {e}")
            return None

        self.path = path
        self.handle = handle
        self.last_error = None
        logger.debug(f"Opened dataset {path}")
        return handle

    def close(self) -> None:
        """Close the current handle, if any, and empty the slot."""
        if self.handle is not None:
            try:
                self.handle.close()
            except Exception as e:
                logger.warning(f"Error closing dataset {self.path}: {e}")
            logger.debug(f"Closed dataset {self.path}")
        self.handle = None
        self.path = None
