"""Entry point for doh-redirect-tracer."""
import sys
from .server import main as server_main

__all__ = ['main']


def main():
    """Main entry point for the doh-redirect-tracer console script.

    An optional first argument overrides LISTEN_PORT.
    """
    port = int(sys.argv[1]) if len(sys.argv) > 1 else None
    try:
        server_main(port)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
