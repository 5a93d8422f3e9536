import contextlib
import gc
import logging
import os
from typing import TYPE_CHECKING, Any, Dict, Iterator

from .base import GenerationOptions, InferenceEngine, PartialCallback
from ..errors import EngineLoadError, GenerationError

if TYPE_CHECKING:
    from ..utils.config import Config

try:
    from llama_cpp import Llama
    _llama_cpp_available = True
except ImportError:
    Llama = None
    _llama_cpp_available = False

logger = logging.getLogger(__name__)


class LlamaCppEngine(InferenceEngine):
    """Runs GGUF models in-process using llama-cpp-python."""

    def __init__(self, config: "Config"):
        if not _llama_cpp_available:
            raise ImportError(
                "`llama-cpp-python` not found. Install it with `pip install ui-actions[llama]` "
                "or follow https://github.com/abetlen/llama-cpp-python#installation"
            )
        self.config = config

    def load(self, model_path: str) -> Any:
        """Loads the GGUF model, suppressing C++ library stderr."""
        model_load_params = {
            "model_path": model_path,
            "n_ctx": self.config.LLAMA_CPP_N_CTX,
            "n_gpu_layers": self.config.LLAMA_CPP_N_GPU_LAYERS,  # -1 offloads every layer it can
            "seed": self.config.RANDOM_SEED,
            "verbose": False,
        }
        log_params = {k: v for k, v in model_load_params.items() if k != "model_path"}
        logger.debug(f"llama.cpp model load parameters (excluding path): {log_params}")

        try:
            with open(os.devnull, "w") as fnull, contextlib.redirect_stderr(fnull):
                handle = Llama(**model_load_params)
        except Exception as e:
            raise EngineLoadError(f"Failed to load model {model_path}: {e}") from e

        logger.info(f"Model loaded: {model_path} (context={getattr(handle, 'n_ctx', 'N/A')})")
        return handle

    def complete(
        self,
        handle: Any,
        prompt: str,
        options: GenerationOptions,
        on_partial: PartialCallback | None = None,
    ) -> str:
        generation_params = {
            "prompt": prompt,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "top_k": options.top_k,
            "stream": on_partial is not None and not self.config.NO_STREAM,
        }
        if options.seed is not None:
            generation_params["seed"] = options.seed
        if options.stop_sequences:
            generation_params["stop"] = list(options.stop_sequences)

        log_params = {k: v for k, v in generation_params.items() if k != "prompt"}
        logger.debug(f"Llama.cpp Request Parameters: {log_params}")

        try:
            if generation_params["stream"]:
                chunks = []
                for delta in self._iterate_llama_cpp_chunks(handle.create_completion(**generation_params)):
                    chunks.append(delta)
                    on_partial(delta)
                return "".join(chunks).strip()

            completion = handle.create_completion(**generation_params)
        except Exception as e:
            logger.exception("Error during llama.cpp generation")
            raise GenerationError(f"Failed to generate response: {e}") from e

        if not completion or not completion.get("choices"):
            raise GenerationError("No response generated by llama.cpp model.")
        return completion["choices"][0].get("text", "").strip()

    def _iterate_llama_cpp_chunks(self, stream: Iterator[Dict[str, Any]]) -> Iterator[str]:
        """Extracts text deltas from llama.cpp completion stream chunks."""
        for chunk in stream:
            text = chunk.get("choices", [{}])[0].get("text")
            if text:
                yield text

    def release(self, handle: Any) -> None:
        """Close the model and free its memory."""
        if handle is None:
            return
        close = getattr(handle, "close", None)
        if close is not None:
            close()
        del handle
        gc.collect()
        logger.debug("llama.cpp model released")
