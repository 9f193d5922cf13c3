"""HTTP service exposing bookcheck runs."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
