"""Typer command implementations."""
