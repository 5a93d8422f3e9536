"""Tool definitions for the function-call protocol.

Defines the UI actions the model may call, with their descriptions and
parameters in a format suitable for prompt injection.
"""

from dataclasses import dataclass, field

from ..utils.prompts import DEVELOPER_PROMPT


@dataclass(frozen=True)
class ToolParameter:
    """A parameter for a tool."""
    name: str
    type: str
    description: str = ""
    enum: tuple[str, ...] | None = None
    required: bool = False


@dataclass(frozen=True)
class Tool:
    """Definition of an action that the model can call."""
    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = field(default_factory=tuple)

    @property
    def required(self) -> frozenset[str]:
        """Names of the parameters that must be present in a call."""
        return frozenset(p.name for p in self.parameters if p.required)

    def get_parameter(self, name: str) -> ToolParameter | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    def to_prompt_string(self) -> str:
        """Format tool for inclusion in the developer prompt."""
        param_lines = []
        for p in self.parameters:
            line = f"    - {p.name} ({p.type}): {p.description}"
            if p.enum:
                line += f" [options: {', '.join(p.enum)}]"
            param_lines.append(line)
        params_str = "\n".join(param_lines)
        return f"- {self.name}: {self.description}\n  Parameters:\n{params_str}"


CHANGE_THEME_TOOL = Tool(
    name="change_theme",
    description="Changes the app theme to light or dark mode",
    parameters=(
        ToolParameter(
            name="theme",
            type="string",
            description="The theme to switch to",
            enum=("light", "dark", "toggle"),
            required=True,
        ),
    ),
)

SHOW_NOTIFICATION_TOOL = Tool(
    name="show_notification",
    description="Shows a notification or alert message to the user",
    parameters=(
        ToolParameter(name="title", type="string", description="The notification title"),
        ToolParameter(
            name="message",
            type="string",
            description="The notification message body",
            required=True,
        ),
        ToolParameter(
            name="type",
            type="string",
            description="The type of notification",
            enum=("info", "success", "warning", "error"),
        ),
    ),
)

NAVIGATE_TO_SCREEN_TOOL = Tool(
    name="navigate_to_screen",
    description="Navigates to a different screen or section of the app",
    parameters=(
        ToolParameter(
            name="screen",
            type="string",
            description="The screen to navigate to",
            enum=("home", "settings", "profile", "about"),
            required=True,
        ),
    ),
)

# The fixed set of actions offered to the model
AVAILABLE_TOOLS: tuple[Tool, ...] = (
    CHANGE_THEME_TOOL,
    SHOW_NOTIFICATION_TOOL,
    NAVIGATE_TO_SCREEN_TOOL,
)


def format_tools_for_prompt(tools: tuple[Tool, ...] | list[Tool] | None = None) -> str:
    """Render tool descriptions as one block per tool, separated by a blank line."""
    if tools is None:
        tools = AVAILABLE_TOOLS
    return "\n\n".join(tool.to_prompt_string() for tool in tools)


def get_developer_prompt(tools: tuple[Tool, ...] | list[Tool] | None = None) -> str:
    """Generate the developer instructions listing the tools and the call grammar."""
    return DEVELOPER_PROMPT.format(tools_description=format_tools_for_prompt(tools))


def build_prompt(user_text: str, tools: tuple[Tool, ...] | list[Tool] | None = None) -> str:
    """Build the full prompt for one user turn.

    Args:
        user_text: The user's literal message.
        tools: Tools to advertise. Defaults to AVAILABLE_TOOLS.

    Returns:
        Developer instructions followed by the user turn and an open
        assistant turn.
    """
    return f"{get_developer_prompt(tools)}\n\nUser: {user_text}\nAssistant:"


def get_tool_by_name(name: str, tools: tuple[Tool, ...] | list[Tool] | None = None) -> Tool | None:
    """Get a tool definition by name."""
    if tools is None:
        tools = AVAILABLE_TOOLS
    for tool in tools:
        if tool.name == name:
            return tool
    return None
