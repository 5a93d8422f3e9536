from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

PartialCallback = Callable[[str], None]


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling settings passed to the engine for one completion."""
    max_tokens: int = 512
    temperature: float = 0.3
    top_k: int = 40
    seed: int | None = 42
    stop_sequences: tuple[str, ...] = field(default_factory=tuple)


class InferenceEngine(ABC):
    """Abstract base class for on-device inference engines."""

    @abstractmethod
    def load(self, model_path: str) -> Any:
        """Load the model file and return a live handle.

        Raises:
            EngineLoadError: The file is corrupt or in an unsupported format.
        """

    @abstractmethod
    def complete(
        self,
        handle: Any,
        prompt: str,
        options: GenerationOptions,
        on_partial: PartialCallback | None = None,
    ) -> str:
        """Complete the prompt with the loaded model.

        Args:
            handle: Handle returned by load().
            prompt: Full prompt text, passed verbatim.
            options: Sampling settings.
            on_partial: Optional callback receiving text deltas as they are produced.

        Returns:
            The final completion text. This is authoritative over the partials.
        """

    @abstractmethod
    def release(self, handle: Any) -> None:
        """Return the resources held by a handle to the engine."""
