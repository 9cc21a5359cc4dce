# SecureKey - Main Entry Point
#
# Runs the API server. Configuration comes from SECUREKEY_* environment
# variables (optionally a .env file); the command line only overrides
# bind address and log level.

import sys
import argparse

from . import __version__
from .core import EventSeverity, EventType, configure_logging, get_settings, log_security_event


def main():
    """Main entry point for SecureKey."""
    parser = argparse.ArgumentParser(
        description="SecureKey - encrypted credential vault API server",
    )

    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port (default: 8000)"
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Override SECUREKEY_LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"SecureKey v{__version__}"
    )

    args = parser.parse_args()

    settings = get_settings()
    log_level = (args.log_level or settings.log_level).upper()
    configure_logging(log_level, json=settings.log_json)

    log_security_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="SecureKey starting",
        details={"version": __version__, "host": args.host, "port": args.port},
    )

    from .api.main import start_api_server

    try:
        start_api_server(host=args.host, port=args.port, log_level=log_level.lower())
    except KeyboardInterrupt:
        log_security_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="SecureKey stopped (user interrupt)",
        )
    except Exception as e:
        log_security_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.CRITICAL,
            message=f"SecureKey crashed: {str(e)}",
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
