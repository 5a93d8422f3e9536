from .base import GenerationOptions, InferenceEngine

# Import LlamaCppEngine conditionally
try:
    from llama_cpp import Llama  # Check if base library is installed
    from .llama_cpp_client import LlamaCppEngine
    _llama_cpp_available = True
except ImportError:
    LlamaCppEngine = None  # type: ignore # Set to None if unavailable
    _llama_cpp_available = False

__all__ = ['GenerationOptions', 'InferenceEngine']
if _llama_cpp_available and LlamaCppEngine:
    __all__.append('LlamaCppEngine')

del _llama_cpp_available
