"""Entry point for running repointel as a module.

Usage:
    python -m repointel [command] [options]

Example:
    python -m repointel scan --root ~/work --snapshot-id base
    python -m repointel diff --base base --head head
"""

from repointel.cli import app

if __name__ == "__main__":
    app()
