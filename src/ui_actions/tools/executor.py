"""Action dispatcher for decoded function calls.

Checks a decoded call against the known actions and their required
parameters, then runs exactly one host effect callback. Every result,
including failures, is returned as an ActionOutcome.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from .definitions import AVAILABLE_TOOLS, Tool, get_tool_by_name
from .parser import FunctionCall, extract_prose_text, parse_function_call

logger = logging.getLogger(__name__)

ThemeCallback = Callable[[str], None]
NotificationCallback = Callable[[str, str, str], None]
NavigateCallback = Callable[[str], None]

DEFAULT_NOTIFICATION_TITLE = "Notification"
DEFAULT_NOTIFICATION_TYPE = "info"


@dataclass(frozen=True)
class ActionOutcome:
    """Result of dispatching one decoded call."""
    success: bool
    human_message: str
    action_label: str


@dataclass(frozen=True)
class ProcessedResponse:
    """A model response split into its call, the dispatch outcome, and display text."""
    call: FunctionCall | None
    outcome: ActionOutcome | None
    text: str


class ActionDispatcher:
    """Routes decoded calls to the host's effect callbacks."""

    def __init__(
        self,
        on_theme_change: ThemeCallback,
        on_notification: NotificationCallback,
        on_navigate: NavigateCallback,
        strict: bool = False,
        tools: tuple[Tool, ...] | list[Tool] | None = None,
    ):
        """Initialize the dispatcher.

        Args:
            on_theme_change: Called with "light", "dark" or "toggle".
            on_notification: Called with (title, message, type).
            on_navigate: Called with the screen identifier.
            strict: Reject values outside a parameter's declared options.
            tools: Tool schemas used for strict checks. Defaults to AVAILABLE_TOOLS.
        """
        self.on_theme_change = on_theme_change
        self.on_notification = on_notification
        self.on_navigate = on_navigate
        self.strict = strict
        self.tools = tuple(tools) if tools is not None else AVAILABLE_TOOLS

        self._handlers: dict[str, Callable[[FunctionCall], ActionOutcome]] = {
            "change_theme": self._execute_change_theme,
            "show_notification": self._execute_show_notification,
            "navigate_to_screen": self._execute_navigate_to_screen,
        }

    @property
    def known_actions(self) -> list[str]:
        return list(self._handlers)

    def dispatch(self, call: FunctionCall) -> ActionOutcome:
        """Execute a decoded call and return its outcome. Never raises."""
        handler = self._handlers.get(call.name)
        if handler is None:
            logger.warning(f"Unknown function requested: {call.name}")
            return _failure(call, f"Unknown function: {call.name}")

        if self.strict:
            violation = self._check_options(call)
            if violation:
                return _failure(call, violation)

        try:
            outcome = handler(call)
        except Exception as e:
            logger.exception(f"Action failed: {call.name}")
            return _failure(call, f"Action {call.name} failed: {e}")

        if outcome.success:
            logger.info(f"Executed action: {outcome.action_label}")
        return outcome

    def _check_options(self, call: FunctionCall) -> str | None:
        tool = get_tool_by_name(call.name, self.tools)
        if tool is None:
            return None
        for key, value in call.parameters.items():
            param = tool.get_parameter(key)
            if param and param.enum and value and value not in param.enum:
                return f"Invalid value for {key}: {value}"
        return None

    def _execute_change_theme(self, call: FunctionCall) -> ActionOutcome:
        theme = call.parameters.get("theme")
        if not theme:
            return _failure(call, "Missing theme parameter")
        self.on_theme_change(theme)
        return ActionOutcome(
            success=True,
            human_message=f"Theme changed to {theme}",
            action_label=f"change_theme({theme})",
        )

    def _execute_show_notification(self, call: FunctionCall) -> ActionOutcome:
        message = call.parameters.get("message")
        title = call.parameters.get("title") or DEFAULT_NOTIFICATION_TITLE
        kind = call.parameters.get("type") or DEFAULT_NOTIFICATION_TYPE
        if not message:
            return _failure(call, "Missing message parameter")
        self.on_notification(title, message, kind)
        return ActionOutcome(
            success=True,
            human_message=f"Notification shown: {message}",
            action_label=f'show_notification("{title}", "{message}", "{kind}")',
        )

    def _execute_navigate_to_screen(self, call: FunctionCall) -> ActionOutcome:
        screen = call.parameters.get("screen")
        if not screen:
            return _failure(call, "Missing screen parameter")
        self.on_navigate(screen)
        return ActionOutcome(
            success=True,
            human_message=f"Navigated to {screen}",
            action_label=f"navigate_to_screen({screen})",
        )


def _failure(call: FunctionCall, message: str) -> ActionOutcome:
    return ActionOutcome(success=False, human_message=message, action_label=f"{call.name}()")


def process_response(response: str, dispatcher: ActionDispatcher) -> ProcessedResponse:
    """Decode a response, dispatch its call if any, and pick the text to show.

    With a call, the text is the response with call spans removed (possibly
    empty). Without one it is the raw response.
    """
    call = parse_function_call(response)
    if call is None:
        return ProcessedResponse(call=None, outcome=None, text=response)
    outcome = dispatcher.dispatch(call)
    return ProcessedResponse(call=call, outcome=outcome, text=extract_prose_text(response))
