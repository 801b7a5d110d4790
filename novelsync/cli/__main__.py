"""CLI entry point.

Allows running the CLI as a module: python -m novelsync.cli
"""

from novelsync.cli import app

if __name__ == "__main__":
    app()
