"""Core components.

This package provides the session-level orchestration for ui_actions:
- ModelLifecycleManager: download/load/release state machine for the model
- ChatSession: one conversation wired to the lifecycle and the dispatcher
"""

from .model_lifecycle import ModelLifecycleManager, ModelState, LifecycleSnapshot
from .session import ChatSession

__all__ = [
    "ModelLifecycleManager",
    "ModelState",
    "LifecycleSnapshot",
    "ChatSession",
]
