"""Parser for function calls in model output.

Extracts a function call from responses that use the fine-tuned call
format:

    <start_function_call>call:NAME{key:<escape>value<escape>,...}<end_function_call>

A response carries at most one honored call. Anything that does not match
the full grammar is treated as plain text.
"""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

START_MARKER = "<start_function_call>"
END_MARKER = "<end_function_call>"
ESCAPE_MARKER = "<escape>"
# Some outputs close a value with an XML-style tag instead of a second <escape>
ALT_ESCAPE_CLOSE = "</escape>"

# A "}" terminates the parameter body; calls never contain nested braces.
FUNCTION_CALL_PATTERN = re.compile(
    re.escape(START_MARKER)
    + r"call:([A-Za-z0-9_]+)\{([^}]*)\}"
    + re.escape(END_MARKER)
)

# Span removal for prose extraction. "." does not cross newlines.
CALL_SPAN_PATTERN = re.compile(re.escape(START_MARKER) + r".*?" + re.escape(END_MARKER))


@dataclass(frozen=True)
class FunctionCall:
    """A decoded function call. The name is not yet checked against the tool set."""
    name: str
    parameters: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"FunctionCall({self.name}, {self.parameters})"


def _parse_parameters(body: str) -> dict[str, str]:
    """Split a flat `key:<escape>value<escape>` list into a mapping."""
    parameters: dict[str, str] = {}
    if not body:
        return parameters

    for segment in body.split(","):
        key, sep, value = segment.partition(":")
        if not sep:
            logger.debug(f"Dropping parameter segment without ':': {segment!r}")
            continue
        key = key.strip()
        value = value.strip().replace(ESCAPE_MARKER, "").replace(ALT_ESCAPE_CLOSE, "")
        if key:
            parameters[key] = value

    return parameters


def parse_function_call(text: str) -> FunctionCall | None:
    """Decode the first well-formed function call in a model response.

    Args:
        text: The model's response text (final or partial).

    Returns:
        The decoded FunctionCall, or None if the text holds no complete call.
    """
    match = FUNCTION_CALL_PATTERN.search(text)
    if not match:
        if has_function_call(text):
            logger.debug("Call marker present but response does not match the call grammar")
        return None

    call = FunctionCall(name=match.group(1), parameters=_parse_parameters(match.group(2)))
    logger.debug(f"Decoded {call}")
    return call


def has_function_call(text: str) -> bool:
    """Quick check if text contains a call start marker."""
    return START_MARKER in text


def extract_prose_text(text: str) -> str:
    """Remove call spans from a response and return the remaining text, trimmed."""
    # Removing a span can join marker fragments into a new span; repeat until stable.
    while True:
        stripped = CALL_SPAN_PATTERN.sub("", text)
        if stripped == text:
            return stripped.strip()
        text = stripped


def format_function_call(call: FunctionCall) -> str:
    """Encode a call back into the wire format."""
    params = ",".join(
        f"{key}:{ESCAPE_MARKER}{value}{ESCAPE_MARKER}" for key, value in call.parameters.items()
    )
    return f"{START_MARKER}call:{call.name}{{{params}}}{END_MARKER}"
