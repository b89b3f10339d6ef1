"""
Application configuration.

Settings come from environment variables (or .env) and are cached per
process. Mock modes for Snowflake, S3 and ffmpeg allow running locally
with no external services.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
