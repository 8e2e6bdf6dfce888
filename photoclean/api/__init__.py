"""
API package for PhotoClean.

Provides the Flask routes that expose analysis runs to a presentation layer.
"""

from __future__ import annotations

from .routes import api, get_orchestrator

__all__ = ['api', 'get_orchestrator']
