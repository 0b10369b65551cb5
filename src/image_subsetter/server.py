#!/usr/bin/env python3
"""
Image Subsetter Server - Entry Point

Loads the startup configuration, opens the single dataset when configured,
and runs the request loop over either the CGI transport (one request from
the process environment) or the persistent HTTP transport.
"""

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from .constants import DEFAULT_HOST, DEFAULT_PORT, EnvVar, TransportMode

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    """Log to stderr; in CGI mode stdout carries the response."""
    level_name = os.environ.get(EnvVar.LOG_LEVEL, "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def _detect_mode() -> str:
    """CGI when invoked by a web server with a CGI environment, HTTP otherwise."""
    if os.environ.get(EnvVar.GATEWAY_INTERFACE) or EnvVar.QUERY_STRING in os.environ:
        return TransportMode.CGI
    return TransportMode.HTTP


def main() -> int:
    """Main entry point for the image subsetter."""
    import argparse

    from .config import default_basename, load_settings
    from .core.subset_manager import SubsetManager
    from .errors import ConfigurationError
    from .server_loop import ServerLoop
    from .transport import CGITransport, HTTPTransport

    _setup_logging()

    parser = argparse.ArgumentParser(description="GIS Image Subsetter")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=[TransportMode.CGI, TransportMode.HTTP],
        default=None,
        help="Transport mode (cgi for a single request, http for a persistent server)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Configuration basename; BASENAME.config or BASENAME.py is loaded",
    )
    parser.add_argument(
        "--host", default=DEFAULT_HOST, help=f"Host for HTTP mode (default: {DEFAULT_HOST})"
    )
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help=f"Port for HTTP mode (default: {DEFAULT_PORT})"
    )

    args = parser.parse_args()
    basename = args.config or default_basename()

    try:
        settings = load_settings(basename)
    except ConfigurationError as e:
        logger.error(f"Configuration failed: {e}")
        return 1

    manager = SubsetManager(settings)
    manager.startup()

    mode = args.mode or _detect_mode()
    if mode == TransportMode.CGI:
        transport = CGITransport()
    else:
        try:
            transport = HTTPTransport(args.host, args.port)
        except OSError as e:
            logger.error(f"Can't listen on {args.host}:{args.port}: {e}")
            manager.close()
            return 1
        print(
            f"Image Subsetter starting in HTTP mode on {args.host}:{args.port}",
            file=sys.stderr,
        )

    try:
        ServerLoop(manager, transport).run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        manager.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
