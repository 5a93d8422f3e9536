"""Function-call protocol support.

This module provides the tool schemas advertised to the model, the codec
for the call wire format, and the dispatcher that turns decoded calls
into host actions.
"""

from .definitions import AVAILABLE_TOOLS, Tool, ToolParameter, build_prompt, format_tools_for_prompt, get_tool_by_name
from .parser import FunctionCall, parse_function_call, has_function_call, extract_prose_text, format_function_call
from .executor import ActionDispatcher, ActionOutcome, ProcessedResponse, process_response

__all__ = [
    "AVAILABLE_TOOLS",
    "Tool",
    "ToolParameter",
    "build_prompt",
    "format_tools_for_prompt",
    "get_tool_by_name",
    "FunctionCall",
    "parse_function_call",
    "has_function_call",
    "extract_prose_text",
    "format_function_call",
    "ActionDispatcher",
    "ActionOutcome",
    "ProcessedResponse",
    "process_response",
]
