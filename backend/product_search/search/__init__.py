"""Semantic search: orchestrator, HTTP schemas and routes"""

from .orchestrator import SearchOrchestrator

__all__ = ["SearchOrchestrator"]
