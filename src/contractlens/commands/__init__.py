"""CLI command implementations registered on the Typer app in :mod:`contractlens.app`."""
