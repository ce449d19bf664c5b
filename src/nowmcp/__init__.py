"""Now Platform MCP Server - batch record operations with cached, self-healing sessions."""

__version__ = "0.1.0"
