import logging

from ..clients.base import PartialCallback
from ..errors import LifecycleError
from ..models.message import ChatMessage, ToolCallBadge
from ..tools.definitions import AVAILABLE_TOOLS, Tool, build_prompt
from ..tools.executor import ActionDispatcher, ProcessedResponse, process_response
from .model_lifecycle import ModelLifecycleManager

logger = logging.getLogger(__name__)


class ChatSession:
    """One conversation: prompts the model, runs any returned action, keeps the transcript."""

    def __init__(
        self,
        lifecycle: ModelLifecycleManager,
        dispatcher: ActionDispatcher,
        tools: tuple[Tool, ...] | list[Tool] | None = None,
    ):
        self.lifecycle = lifecycle
        self.dispatcher = dispatcher
        self.tools = tuple(tools) if tools is not None else AVAILABLE_TOOLS
        self.messages: list[ChatMessage] = []

    def send(self, user_text: str, on_partial: PartialCallback | None = None) -> ChatMessage:
        """Run one user turn and return the message to display for it.

        Generation failures become a ``system`` message rather than an exception.
        """
        self.messages.append(ChatMessage(role="user", content=user_text))

        try:
            response = self.lifecycle.generate(build_prompt(user_text, self.tools), on_partial)
        except LifecycleError as e:
            logger.warning(f"Generation failed: {e}")
            reply = ChatMessage(role="system", content=f"Error: {e}")
            self.messages.append(reply)
            return reply

        processed = process_response(response, self.dispatcher)
        reply = self._to_message(processed, response)
        self.messages.append(reply)
        return reply

    @staticmethod
    def _to_message(processed: ProcessedResponse, response: str) -> ChatMessage:
        if processed.call is None or processed.outcome is None:
            return ChatMessage(role="assistant", content=processed.text or response)

        outcome = processed.outcome
        badge = ToolCallBadge(
            name=processed.call.name,
            action=outcome.action_label or f"{processed.call.name}()",
            success=outcome.success,
        )
        return ChatMessage(role="assistant", content=processed.text or outcome.human_message, tool_call=badge)

    def clear(self) -> None:
        self.messages.clear()
