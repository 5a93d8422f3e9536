from pathlib import Path

from ui_actions.utils.config import Config, DEFAULT_MODEL_NAME


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("UI_ACTIONS_MODEL_CACHE_DIR", str(tmp_path))
    config = Config()

    assert config.MAX_TOKENS == 512
    assert config.TEMPERATURE == 0.3
    assert config.TOP_K == 40
    assert config.RANDOM_SEED == 42
    assert config.model_path == tmp_path / DEFAULT_MODEL_NAME


def test_env_override(monkeypatch):
    monkeypatch.setenv("UI_ACTIONS_MAX_TOKENS", "128")
    monkeypatch.setenv("ui_actions_verbose", "true")

    config = Config()

    assert config.MAX_TOKENS == 128
    assert config.VERBOSE is True


def test_model_asset(tmp_path):
    config = Config(MODEL_CACHE_DIR=str(tmp_path), MODEL_NAME="m.gguf", MODEL_URL="https://example.invalid/m.gguf", MODEL_MIN_BYTES=10)

    asset = config.model_asset()

    assert asset.name == "m.gguf"
    assert asset.url == "https://example.invalid/m.gguf"
    assert asset.path == Path(tmp_path) / "m.gguf"
    assert asset.min_bytes == 10


def test_cache_dir_is_expanded(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))

    config = Config(MODEL_CACHE_DIR="~/models")

    assert config.MODEL_CACHE_DIR == str(tmp_path / "models")


def test_generation_options():
    config = Config(MAX_TOKENS=64, TEMPERATURE=0.1, STOP_SEQUENCES=["\nUser:", "<eos>"])

    options = config.generation_options()

    assert options.max_tokens == 64
    assert options.temperature == 0.1
    assert options.stop_sequences == ("\nUser:", "<eos>")
