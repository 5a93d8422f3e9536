import time
from dataclasses import dataclass


@dataclass(frozen=True)
class ToolCallBadge:
    """Summary of a dispatched call, shown next to the assistant message."""
    name: str
    action: str
    success: bool


class ChatMessage:
    """One entry of the conversation transcript."""

    def __init__(self, role: str, content: str, tool_call: ToolCallBadge | None = None, timestamp: float | None = None):
        self.role = role
        self.content = content
        self.tool_call = tool_call
        self.timestamp = timestamp if timestamp else time.time()

    def to_dict(self) -> dict:
        """Convert to dictionary format"""
        data = {"role": self.role, "content": self.content, "timestamp": self.timestamp}
        if self.tool_call:
            data["tool_call"] = {
                "name": self.tool_call.name,
                "action": self.tool_call.action,
                "success": self.tool_call.success,
            }
        return data

    def __repr__(self) -> str:
        return f"ChatMessage(role={self.role!r}, content={self.content!r}, tool_call={self.tool_call!r})"
