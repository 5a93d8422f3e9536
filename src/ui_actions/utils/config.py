import logging
import os
from pathlib import Path
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ui_actions.clients.base import GenerationOptions
from ui_actions.models.asset import ModelAsset

logger = logging.getLogger(__name__)

# FunctionGemma 270M, quantized GGUF build
DEFAULT_MODEL_URL = "https://huggingface.co/unsloth/functiongemma-270m-it-GGUF/resolve/main/functiongemma-270m-it-Q8_0.gguf"
DEFAULT_MODEL_NAME = "functiongemma-270m-it-Q8_0.gguf"


def get_default_config_dir() -> Path:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(xdg_config_home) / "ui-actions"


DOTENV_PATH = get_default_config_dir() / ".env"


class Config(BaseSettings):
    # --- Model Asset Settings --- #
    MODEL_URL: str = Field(default=DEFAULT_MODEL_URL, description="Where the model file is downloaded from")
    MODEL_NAME: str = Field(default=DEFAULT_MODEL_NAME, description="File name of the model inside MODEL_CACHE_DIR")
    MODEL_CACHE_DIR: str = Field(default=os.path.expanduser("~/.cache/ui_actions/models"), description="Directory holding the downloaded model")
    MODEL_MIN_BYTES: int = Field(default=1024 * 1024, description="A local file at least this large counts as already downloaded")

    # --- Download Settings --- #
    DOWNLOAD_TIMEOUT: float = Field(default=30.0, description="Seconds to wait for the server before giving up")
    DOWNLOAD_CHUNK_SIZE: int = Field(default=1024 * 1024, description="Bytes written per progress update")

    # --- LLM Generation Settings --- #
    MAX_TOKENS: int = Field(default=512, description="Maximum tokens to generate per response")
    TEMPERATURE: float = Field(default=0.3, description="Generation temperature")
    TOP_K: int = Field(default=40, description="Top-k sampling")
    RANDOM_SEED: int = Field(default=42, description="Sampling seed")
    STOP_SEQUENCES: List[str] = Field(default_factory=lambda: ["\nUser:"], description="Sequences that end a completion")
    LLAMA_CPP_N_CTX: int = Field(default=1024, description="Context size for Llama.cpp models")
    LLAMA_CPP_N_GPU_LAYERS: int = Field(default=-1, description="Number of layers to offload to GPU (-1 for all possible layers)")

    # --- UI/Interaction Settings --- #
    VERBOSE: bool = Field(default=False, description="Verbose mode for debugging")
    PLAIN_OUTPUT: bool = Field(default=False, description="Use plain text output without Rich formatting")
    NO_STREAM: bool = Field(default=False, description="Disable streaming output")
    INITIAL_THEME: str = Field(default="light", description="Theme the host starts with")
    INITIAL_SCREEN: str = Field(default="home", description="Screen the host starts on")

    model_config = SettingsConfigDict(
        env_prefix="UI_ACTIONS_",
        env_file=DOTENV_PATH,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra='ignore'
    )

    def __init__(self, **values: Any):
        if 'MODEL_CACHE_DIR' in values:
            values['MODEL_CACHE_DIR'] = str(Path(values['MODEL_CACHE_DIR']).expanduser())
        super().__init__(**values)

    @property
    def model_path(self) -> Path:
        return Path(self.MODEL_CACHE_DIR).expanduser() / self.MODEL_NAME

    def model_asset(self) -> ModelAsset:
        return ModelAsset(
            name=self.MODEL_NAME,
            url=self.MODEL_URL,
            path=self.model_path,
            min_bytes=self.MODEL_MIN_BYTES,
        )

    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(
            max_tokens=self.MAX_TOKENS,
            temperature=self.TEMPERATURE,
            top_k=self.TOP_K,
            seed=self.RANDOM_SEED,
            stop_sequences=tuple(self.STOP_SEQUENCES),
        )
