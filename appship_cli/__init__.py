"""Appship MCP agent.

Stores the Appship API key locally and exposes Appship operations as MCP
tools over stdio. The command surface is implemented with Typer and Rich,
while tool payloads remain machine-friendly JSON.
"""

__all__ = ["__version__"]

__version__ = "1.0.0"
