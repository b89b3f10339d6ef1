"""
Tubely - video upload and processing service.

This package contains the complete application:
- core: Framework-agnostic upload flow and domain models
- infrastructure: ffmpeg, S3, Snowflake and JWT integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
