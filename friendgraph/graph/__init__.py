"""
Graph projection components for the friendship graph
"""

from .projection_cache import ProjectionCache
from .projector import GraphProjector

__all__ = ["GraphProjector", "ProjectionCache"]
