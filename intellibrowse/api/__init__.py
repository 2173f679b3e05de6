"""
FastAPI server module for IntelliBrowse.

Exposes the agent service over REST and Server-Sent Events.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
