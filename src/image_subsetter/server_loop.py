"""
Server loop: accept, dispatch, respond, finish.

One request is handled at a time. The loop ends when the transport has no
more requests (CGI: after exactly one); a persistent transport keeps it
running until the process is terminated.
"""

import logging

from .constants import ErrorMessages, SuccessMessages
from .core.subset_manager import SubsetManager
from .transport import Request, Transport

logger = logging.getLogger(__name__)


class ServerLoop:
    """Sequential request loop around a transport and a SubsetManager."""

    def __init__(self, manager: SubsetManager, transport: Transport) -> None:
        self.manager = manager
        self.transport = transport
        self.handled = 0

    def run(self) -> int:
        """Serve requests until the transport runs out. Returns the number handled."""
        try:
            while True:
                request = self.transport.accept()
                if request is None:
                    break
                self.serve(request)
        finally:
            self.transport.close()

        logger.info(SuccessMessages.LOOP_FINISHED.format(self.handled))
        return self.handled

    def serve(self, request: Request) -> None:
        """Handle one accepted request and finalize it, whatever happens."""
        try:
            self.manager.handle(request)
        except Exception:
            logger.exception(f"Unhandled error for request '{request.query_string}'")
            if not request.sink.headers_sent:
                try:
                    self.manager.builder.write_error(
                        request.sink, 500, ErrorMessages.UNEXPECTED_FAILURE
                    )
                except Exception as e:
                    logger.error(f"Failed to write error page: {e}")
        finally:
            self.transport.finish(request)
            self.handled += 1
