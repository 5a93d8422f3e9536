from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ModelAsset:
    """The model file: where it comes from, where it lives, and how big it must be."""
    name: str
    url: str
    path: Path
    min_bytes: int = 0

    def __str__(self) -> str:
        return f"{self.name} ({self.path})"
