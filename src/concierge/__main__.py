"""Concierge CLI bootstrap."""

from concierge.cli import app

if __name__ == "__main__":
    app()
