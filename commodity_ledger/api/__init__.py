"""API layer package for HTTP surfaces."""

from .application import create_api_application

__all__ = ["create_api_application"]
