"""Command line interface for tiercache."""

from tiercache.cli.typer_app import app

__all__ = ["app"]
