"""Runtime configuration for now-mcp."""

from .settings import ConnectionSettings, load_connection_settings

__all__ = ["ConnectionSettings", "load_connection_settings"]
