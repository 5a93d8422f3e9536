import pytest
from pathlib import Path

from ui_actions.clients.base import InferenceEngine
from ui_actions.core.model_lifecycle import ModelLifecycleManager
from ui_actions.errors import DownloadError, EngineLoadError
from ui_actions.models.asset import ModelAsset


class FakeHandle:
    def __init__(self, path):
        self.path = path
        self.closed = False


class FakeEngine(InferenceEngine):
    """Records every call; behavior is controlled through attributes."""

    def __init__(self):
        self.fail_load = False
        self.response = ""
        self.partials: list[str] = []
        self.fail_complete = False
        self.loaded: list[FakeHandle] = []
        self.released: list[FakeHandle] = []
        self.prompts: list[str] = []
        self.events: list[str] = []

    def load(self, model_path):
        self.events.append("load")
        if self.fail_load:
            raise EngineLoadError("unsupported model format")
        handle = FakeHandle(model_path)
        self.loaded.append(handle)
        return handle

    def complete(self, handle, prompt, options, on_partial=None):
        self.prompts.append(prompt)
        if self.fail_complete:
            raise RuntimeError("engine crashed")
        if on_partial:
            for p in self.partials:
                on_partial(p)
        return self.response

    def release(self, handle):
        self.events.append("release")
        handle.closed = True
        self.released.append(handle)


class FakeFetcher:
    """Writes a file of `payload_size` bytes on download unless told to fail."""

    def __init__(self, payload_size: int = 64, fail: bool = False, progress=(0.25, 0.5, 1.0)):
        self.payload_size = payload_size
        self.fail = fail
        self.progress = progress
        self.downloads: list[tuple[str, Path]] = []

    def exists(self, path):
        return Path(path).is_file()

    def size_of(self, path):
        p = Path(path)
        return p.stat().st_size if p.is_file() else 0

    def download(self, url, dest_path, on_progress=None):
        self.downloads.append((url, Path(dest_path)))
        if self.fail:
            raise DownloadError("connection reset")
        for fraction in self.progress:
            if on_progress:
                on_progress(fraction)
        Path(dest_path).parent.mkdir(parents=True, exist_ok=True)
        Path(dest_path).write_bytes(b"\0" * self.payload_size)
        return str(dest_path)


@pytest.fixture
def asset(tmp_path):
    return ModelAsset(
        name="model.gguf",
        url="https://example.invalid/model.gguf",
        path=tmp_path / "models" / "model.gguf",
        min_bytes=16,
    )


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def manager(asset, engine, fetcher):
    return ModelLifecycleManager(asset, engine, fetcher)


@pytest.fixture
def ready_manager(manager):
    manager.request_download()
    assert manager.confirm()
    assert manager.load()
    return manager
