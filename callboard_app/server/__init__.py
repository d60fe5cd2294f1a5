"""FastAPI application exposing webhooks, state and the viewer channel."""

from .app import Services, build_services, create_app

__all__ = ["Services", "build_services", "create_app"]
