"""
Core business logic for video uploads.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
boto3 or any infrastructure concerns. Collaborators are passed in, so the
upload flow can be tested with in-memory fakes.
"""
