from .asset import ModelAsset
from .message import ChatMessage, ToolCallBadge

__all__ = ["ModelAsset", "ChatMessage", "ToolCallBadge"]
