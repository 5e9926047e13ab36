"""Typer command line (`tdcli`)."""
