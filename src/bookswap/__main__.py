"""Main entry point for ``python -m bookswap``."""

from bookswap.cli import main

if __name__ == "__main__":
    main()
