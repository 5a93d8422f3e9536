"""Model lifecycle management.

Owns the state machine that takes the model from "not on disk" to a live
inference handle and back:

    idle -> awaiting_consent -> downloading -> downloaded -> loading -> ready

with ``error`` reachable from downloading and loading, and ``ready``
returning to ``downloaded`` on release.

One ModelLifecycleManager is created per session and passed to whatever
needs it. It holds at most one inference handle, and only while the state
is ``ready``. Download and load failures never escape; they are recorded
in the ``error`` state and the user decides whether to retry or cancel.
"""

import logging
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from ..clients.base import GenerationOptions, InferenceEngine, PartialCallback
from ..errors import AssetMissingError, DownloadError, EngineLoadError, GenerationError, ModelNotReadyError
from ..models.asset import ModelAsset

if TYPE_CHECKING:
    from ..model_fetcher import ModelFetcher

logger = logging.getLogger(__name__)


class ModelState(str, Enum):
    IDLE = "idle"
    AWAITING_CONSENT = "awaiting_consent"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class LifecycleSnapshot:
    """Point-in-time view of the lifecycle, handed to listeners."""
    state: ModelState
    download_progress: float
    error_detail: str | None
    is_model_ready: bool


LifecycleListener = Callable[[LifecycleSnapshot], None]


class ModelLifecycleManager:
    """Drives download, load, generation and release of the model."""

    def __init__(
        self,
        asset: ModelAsset,
        engine: InferenceEngine,
        fetcher: "ModelFetcher",
        options: GenerationOptions | None = None,
    ):
        """Initialize the manager in the ``idle`` state.

        Args:
            asset: The model file to acquire.
            engine: Inference engine that loads the file and completes prompts.
            fetcher: Downloads the file and inspects it on disk.
            options: Sampling settings for every generate() call.
        """
        self.asset = asset
        self.engine = engine
        self.fetcher = fetcher
        self.options = options or GenerationOptions()

        self._lock = threading.RLock()
        self._state = ModelState.IDLE
        self._download_progress = 0.0
        self._error_detail: str | None = None
        self._handle: Any = None
        self._listeners: list[LifecycleListener] = []

    # --- Observables --- #

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def download_progress(self) -> float:
        return self._download_progress

    @property
    def error_detail(self) -> str | None:
        return self._error_detail

    @property
    def is_model_ready(self) -> bool:
        """The only check callers should make before generate()."""
        with self._lock:
            return self._state is ModelState.READY and self._handle is not None

    def snapshot(self) -> LifecycleSnapshot:
        with self._lock:
            return LifecycleSnapshot(
                state=self._state,
                download_progress=self._download_progress,
                error_detail=self._error_detail,
                is_model_ready=self._state is ModelState.READY and self._handle is not None,
            )

    def add_listener(self, listener: LifecycleListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: LifecycleListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, *snapshots: LifecycleSnapshot) -> None:
        for snapshot in snapshots:
            for listener in list(self._listeners):
                try:
                    listener(snapshot)
                except Exception:
                    logger.exception("Lifecycle listener failed")

    def _transition(self, new_state: ModelState, error: str | None = None, handle: Any = None) -> LifecycleSnapshot:
        """Apply a state change and return the snapshot to publish.

        Must be called with the lock held. Callers publish the snapshot with
        _notify() after releasing the lock.
        """
        old_state = self._state
        if old_state is ModelState.DOWNLOADING and new_state is not ModelState.DOWNLOADING:
            self._download_progress = 1.0
        elif new_state is ModelState.DOWNLOADING and old_state is not ModelState.DOWNLOADING:
            self._download_progress = 0.0
        self._state = new_state
        self._error_detail = error if new_state is ModelState.ERROR else None
        self._handle = handle if new_state is ModelState.READY else None

        if new_state is ModelState.ERROR:
            logger.warning(f"Model state {old_state.value} -> error: {error}")
        else:
            logger.info(f"Model state {old_state.value} -> {new_state.value}")
        return self.snapshot()

    def _move_to(self, new_state: ModelState, error: str | None = None, handle: Any = None) -> None:
        with self._lock:
            snapshot = self._transition(new_state, error=error, handle=handle)
        self._notify(snapshot)

    def is_asset_present(self) -> bool:
        """True when a sufficiently large model file is already present."""
        path = self.asset.path
        return self.fetcher.exists(path) and self.fetcher.size_of(path) > self.asset.min_bytes

    # --- Download --- #

    def request_download(self) -> None:
        """Ask the user for consent to download. Ignored outside idle/error."""
        with self._lock:
            if self._state not in (ModelState.IDLE, ModelState.ERROR):
                logger.debug(f"request_download ignored in state {self._state.value}")
                return
            snapshot = self._transition(ModelState.AWAITING_CONSENT)
        self._notify(snapshot)

    def cancel(self) -> None:
        """Drop a pending consent request or an error and return to idle."""
        with self._lock:
            if self._state not in (ModelState.AWAITING_CONSENT, ModelState.ERROR):
                logger.debug(f"cancel ignored in state {self._state.value}")
                return
            snapshot = self._transition(ModelState.IDLE)
        self._notify(snapshot)

    def confirm(self) -> bool:
        """Download the model after consent.

        Skips the network when a large enough file is already on disk.
        Failures, including errors inspecting the local file, move the
        manager to ``error`` instead of raising.

        Returns:
            True if the model ended up downloaded.
        """
        with self._lock:
            if self._state in (ModelState.DOWNLOADED, ModelState.READY):
                return True
            if self._state not in (ModelState.AWAITING_CONSENT, ModelState.ERROR):
                logger.debug(f"confirm ignored in state {self._state.value}")
                return False
            snapshot = self._transition(ModelState.DOWNLOADING)
        self._notify(snapshot)

        try:
            if self.is_asset_present():
                logger.info(f"Model already present at {self.asset.path}, skipping download")
                dest = str(self.asset.path)
            else:
                dest = self.fetcher.download(self.asset.url, self.asset.path, self._on_progress)
        except Exception as e:
            if not isinstance(e, DownloadError):
                logger.exception("Unexpected download failure")
            self._move_to(ModelState.ERROR, error=str(e) or "Failed to download model")
            return False

        if not dest:
            self._move_to(ModelState.ERROR, error="Download finished without a file path")
            return False

        self._move_to(ModelState.DOWNLOADED)
        return True

    def retry(self) -> bool:
        """Re-run the download after an error."""
        with self._lock:
            if self._state is not ModelState.ERROR:
                logger.debug(f"retry ignored in state {self._state.value}")
                return False
        return self.confirm()

    def _on_progress(self, fraction: float) -> None:
        if math.isnan(fraction):
            return
        with self._lock:
            if self._state is not ModelState.DOWNLOADING:
                return
            fraction = min(max(fraction, 0.0), 1.0)
            if fraction < self._download_progress:
                return
            self._download_progress = fraction
            snapshot = self.snapshot()
        self._notify(snapshot)

    # --- Load / release --- #

    def load(self) -> bool:
        """Load the downloaded model into the engine.

        Releases any live handle first, so at most one handle exists.
        A missing or unreadable file, or an engine rejection, moves the
        manager to ``error``.

        Returns:
            True if the model is ready.
        """
        with self._lock:
            if self._state in (ModelState.DOWNLOADING, ModelState.LOADING):
                logger.debug(f"load ignored in state {self._state.value}")
                return False
            snapshots = self._release_handle()
            error = self._check_asset_for_load(snapshots)
            if error:
                snapshots.append(self._transition(ModelState.ERROR, error=error))
            else:
                snapshots.append(self._transition(ModelState.LOADING))
        self._notify(*snapshots)
        if error:
            return False

        try:
            handle = self.engine.load(str(self.asset.path))
        except Exception as e:
            if not isinstance(e, EngineLoadError):
                logger.exception("Unexpected engine failure during load")
            self._move_to(ModelState.ERROR, error=str(e) or "Failed to load model")
            return False

        if handle is None:
            self._move_to(ModelState.ERROR, error="Engine returned no model handle")
            return False

        self._move_to(ModelState.READY, handle=handle)
        return True

    def _check_asset_for_load(self, snapshots: list[LifecycleSnapshot]) -> str | None:
        """Return why the model file cannot be loaded, or None if it can."""
        path = self.asset.path
        try:
            present = self.is_asset_present()
            on_disk = present or self.fetcher.exists(path)
        except Exception as e:
            logger.exception("Could not inspect model file")
            return f"Could not inspect model file {path}: {e}"

        if present and self._state is not ModelState.DOWNLOADED:
            snapshots.append(self._transition(ModelState.DOWNLOADED))
        if not on_disk:
            return str(AssetMissingError(f"Model file not found: {path}"))
        if self._state is not ModelState.DOWNLOADED:
            # Present but below the size threshold
            return str(AssetMissingError(f"Model file is incomplete: {path}"))
        return None

    def release(self) -> None:
        """Hand the live handle back to the engine. No-op without one."""
        with self._lock:
            snapshots = self._release_handle()
        self._notify(*snapshots)

    def _release_handle(self) -> list[LifecycleSnapshot]:
        if self._state is not ModelState.READY or self._handle is None:
            return []
        try:
            self.engine.release(self._handle)
        except Exception as e:
            logger.warning(f"Error during model release: {e}")
        return [self._transition(ModelState.DOWNLOADED)]

    # --- Inference --- #

    def generate(self, prompt: str, on_partial: PartialCallback | None = None) -> str:
        """Complete a prompt with the loaded model.

        Args:
            prompt: Full prompt text, passed to the engine verbatim.
            on_partial: Optional callback receiving text deltas while generating.

        Returns:
            The engine's final completion text.

        Raises:
            ModelNotReadyError: No model is loaded.
            GenerationError: The engine failed; the lifecycle state is unchanged.
        """
        with self._lock:
            if not self.is_model_ready:
                raise ModelNotReadyError()
            handle = self._handle

        try:
            text = self.engine.complete(handle, prompt, self.options, on_partial)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(str(e) or "Failed to generate response") from e
        return text or ""
