"""
Orchestration package for coordinating pull pipeline phases.

This package provides the orchestration layer that sequences the pull phases:
Discover → Render → Cleanup, sharing one PullContext per run.
"""

from .pull_orchestrator import PullContext, PullOrchestrator

__all__ = [
    'PullContext',
    'PullOrchestrator'
]
