"""
Proctor Core

Central module exports for the live proctoring integrity pipeline.
"""

from core.orchestrator import ProctorOrchestrator

__all__ = [
    "ProctorOrchestrator",
]
