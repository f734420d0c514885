# Main Entry Point - Local vault backend
#
# Runs the FastAPI backend on localhost. The UI talks to it with the
# session token printed at start-up.

import argparse
import sys

from . import __version__
from .config import load_config
from .core import EventSeverity, EventType, log_security_event


def main():
    """Main entry point for pinvault."""
    config = load_config()

    parser = argparse.ArgumentParser(
        description="pinvault - PIN-gated encrypted personal finance vault (local backend)",
    )

    parser.add_argument(
        "--host",
        default=config.host,
        help=f"Backend host (default: {config.host})"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=config.port,
        help=f"Backend port (default: {config.port})"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"pinvault v{__version__}"
    )

    args = parser.parse_args()

    from .api.main import start_api_server
    from .api.security import initialize_session_token, token_fingerprint

    try:
        token = initialize_session_token(config.session_token)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(2)

    print("=" * 60)
    print(f"  pinvault v{__version__}")
    print(f"  Vault database: {config.db_path}")
    print(f"  API: http://{args.host}:{args.port}/api/vault")
    if config.session_token:
        print(f"  Session token: from PINVAULT_SESSION_TOKEN ({token_fingerprint(token)})")
    else:
        print(f"  Session token: {token}")
    print("  Press Ctrl+C to stop")
    print("=" * 60)

    try:
        start_api_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\n\nShutting down backend...")
        log_security_event(
            EventType.SYSTEM_STOP,
            EventSeverity.INFO,
            "pinvault backend stopped (user interrupt)"
        )
    except Exception as e:
        print(f"\n\nError: {str(e)}")
        log_security_event(
            EventType.SYSTEM_STOP,
            EventSeverity.CRITICAL,
            f"pinvault backend crashed: {str(e)}"
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
