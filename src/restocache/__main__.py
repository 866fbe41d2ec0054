"""Main entry point for the restocache CLI.

Usage:
    python -m restocache --help
"""

from restocache.cli import main

if __name__ == "__main__":
    main()
