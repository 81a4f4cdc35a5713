"""Slackr CLI entry point."""

from slackr.cli import app

if __name__ == "__main__":
    app()
