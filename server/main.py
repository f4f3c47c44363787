"""
Main entry point for the UNO server.

Usage:
    python -m server.main

Or:
    uno-server
"""

from server.network.server import main


if __name__ == "__main__":
    main()
