"""Toolmesh - connect to many MCP capability servers and route tool calls.

Protocol clients for several wire transports, a connection router that
keeps one live client per configured server, and helpers that present
tool catalogs and results to language-model prompts.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
