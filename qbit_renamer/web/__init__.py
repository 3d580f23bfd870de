"""
HTTP Layer.

This package contains the FastAPI application consumed by the presentation
layer, its request schemas and the per-client rate limiter.
"""

from .server import create_app, start_server

__all__ = ["create_app", "start_server"]
