"""Drive app actions through a local function-calling model."""

__version__ = "0.1.0"
