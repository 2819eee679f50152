"""
Query API

FastAPI application factory and service entry point.
"""

from candleflow.query.api.main import create_app, main

__all__ = ["create_app", "main"]
