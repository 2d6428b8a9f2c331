"""Gorp — Discord relay bot for a Letta agent."""

from gorp.config import CONFIG, AppConfig, __version__

__all__ = ["CONFIG", "AppConfig", "__version__"]
