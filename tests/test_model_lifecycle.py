"""Tests for the model lifecycle state machine."""

import threading

import pytest

from ui_actions.core.model_lifecycle import ModelLifecycleManager, ModelState
from ui_actions.errors import GenerationError, ModelNotReadyError

from conftest import FakeFetcher


def _check_handle_invariant(manager):
    assert (manager._handle is not None) == (manager.state is ModelState.READY)
    assert manager.is_model_ready == (manager.state is ModelState.READY)


class TestDownload:

    def test_starts_idle(self, manager):
        assert manager.state is ModelState.IDLE
        assert manager.error_detail is None
        assert not manager.is_model_ready

    def test_request_then_cancel(self, manager):
        manager.request_download()
        assert manager.state is ModelState.AWAITING_CONSENT

        manager.cancel()

        assert manager.state is ModelState.IDLE

    def test_cancel_issues_no_fetch(self, manager, fetcher):
        manager.request_download()
        manager.cancel()

        assert fetcher.downloads == []

    def test_confirm_downloads(self, manager, fetcher, asset):
        manager.request_download()

        assert manager.confirm()

        assert manager.state is ModelState.DOWNLOADED
        assert manager.download_progress == 1.0
        assert fetcher.downloads == [(asset.url, asset.path)]

    def test_confirm_skips_fetch_when_file_present(self, manager, fetcher, asset):
        asset.path.parent.mkdir(parents=True)
        asset.path.write_bytes(b"\0" * 100)
        manager.request_download()

        assert manager.confirm()

        assert manager.state is ModelState.DOWNLOADED
        assert manager.download_progress == 1.0
        assert fetcher.downloads == []

    def test_small_file_is_downloaded_again(self, manager, fetcher, asset):
        asset.path.parent.mkdir(parents=True)
        asset.path.write_bytes(b"\0" * 4)
        manager.request_download()

        assert manager.confirm()

        assert len(fetcher.downloads) == 1

    def test_progress_is_reported_and_monotonic(self, asset, engine):
        fetcher = FakeFetcher(progress=(0.1, 0.6, 0.4, 2.0))
        manager = ModelLifecycleManager(asset, engine, fetcher)
        seen = []
        manager.add_listener(lambda snap: seen.append((snap.state, snap.download_progress)))
        manager.request_download()

        manager.confirm()

        progress = [p for state, p in seen if state is ModelState.DOWNLOADING]
        assert progress == [0.0, 0.1, 0.6, 1.0]
        assert seen[-1] == (ModelState.DOWNLOADED, 1.0)

    def test_failed_download_goes_to_error(self, asset, engine):
        manager = ModelLifecycleManager(asset, engine, FakeFetcher(fail=True))
        manager.request_download()

        assert manager.confirm() is False

        assert manager.state is ModelState.ERROR
        assert manager.error_detail == "connection reset"

    def test_unexpected_fetch_exception_is_captured(self, manager, fetcher):
        def boom(url, dest, on_progress=None):
            raise ValueError("disk full")
        fetcher.download = boom
        manager.request_download()

        assert manager.confirm() is False
        assert manager.state is ModelState.ERROR
        assert "disk full" in manager.error_detail

    def test_empty_destination_path_is_an_error(self, manager, fetcher):
        fetcher.download = lambda url, dest, on_progress=None: ""
        manager.request_download()

        assert manager.confirm() is False
        assert manager.state is ModelState.ERROR

    def test_error_cancel_returns_to_idle(self, asset, engine):
        manager = ModelLifecycleManager(asset, engine, FakeFetcher(fail=True))
        manager.request_download()
        manager.confirm()

        manager.cancel()

        assert manager.state is ModelState.IDLE
        assert manager.error_detail is None

    def test_retry_only_from_error(self, manager, fetcher):
        assert manager.retry() is False
        assert manager.state is ModelState.IDLE
        assert fetcher.downloads == []

    def test_confirm_without_request_is_ignored(self, manager, fetcher):
        assert manager.confirm() is False
        assert manager.state is ModelState.IDLE
        assert fetcher.downloads == []

    def test_request_download_ignored_when_downloaded(self, manager):
        manager.request_download()
        manager.confirm()

        manager.request_download()

        assert manager.state is ModelState.DOWNLOADED


class TestLoad:

    def test_load_reaches_ready(self, manager, engine, asset):
        manager.request_download()
        manager.confirm()

        assert manager.load()

        assert manager.state is ModelState.READY
        assert manager.is_model_ready
        assert engine.loaded[0].path == str(asset.path)

    def test_load_with_missing_file(self, manager, asset):
        manager.request_download()
        manager.confirm()
        asset.path.unlink()

        assert manager.load() is False

        assert manager.state is ModelState.ERROR
        assert "not found" in manager.error_detail
        assert not manager.is_model_ready

    def test_load_from_idle_without_file(self, manager, engine):
        assert manager.load() is False

        assert manager.state is ModelState.ERROR
        assert engine.loaded == []

    def test_load_from_idle_with_file_present(self, manager, asset):
        asset.path.parent.mkdir(parents=True)
        asset.path.write_bytes(b"\0" * 100)
        states = []
        manager.add_listener(lambda snap: states.append(snap.state))

        assert manager.load()

        assert states == [ModelState.DOWNLOADED, ModelState.LOADING, ModelState.READY]

    def test_engine_rejection(self, manager, engine):
        engine.fail_load = True
        manager.request_download()
        manager.confirm()

        assert manager.load() is False

        assert manager.state is ModelState.ERROR
        assert manager.error_detail == "unsupported model format"

    def test_reload_releases_old_handle_first(self, ready_manager, engine):
        first = engine.loaded[0]

        assert ready_manager.load()

        assert first.closed
        assert engine.events == ["load", "release", "load"]
        assert ready_manager._handle is engine.loaded[1]

    def test_release(self, ready_manager, engine):
        ready_manager.release()

        assert ready_manager.state is ModelState.DOWNLOADED
        assert not ready_manager.is_model_ready
        assert len(engine.released) == 1

    def test_release_is_idempotent(self, ready_manager, engine):
        ready_manager.release()
        ready_manager.release()

        assert len(engine.released) == 1

    def test_release_without_handle(self, manager, engine):
        manager.release()

        assert manager.state is ModelState.IDLE
        assert engine.released == []


class TestGenerate:

    def test_not_ready(self, manager):
        with pytest.raises(ModelNotReadyError):
            manager.generate("hi")

    def test_after_release(self, ready_manager):
        ready_manager.release()

        with pytest.raises(ModelNotReadyError):
            ready_manager.generate("hi")

    def test_prompt_passed_verbatim(self, ready_manager, engine):
        engine.response = "hello"

        assert ready_manager.generate("User: hi\nAssistant:") == "hello"
        assert engine.prompts == ["User: hi\nAssistant:"]

    def test_partials_forwarded_but_final_text_wins(self, ready_manager, engine):
        engine.partials = ["hel", "lo!"]
        engine.response = "hello"
        partials = []

        text = ready_manager.generate("hi", on_partial=partials.append)

        assert partials == ["hel", "lo!"]
        assert text == "hello"

    def test_engine_failure_is_rejected_without_state_change(self, ready_manager, engine):
        engine.fail_complete = True

        with pytest.raises(GenerationError, match="engine crashed"):
            ready_manager.generate("hi")

        assert ready_manager.state is ModelState.READY


class TestScenario:

    def test_fail_retry_load(self, asset, engine):
        fetcher = FakeFetcher(fail=True)
        manager = ModelLifecycleManager(asset, engine, fetcher)
        ready_flags = []
        manager.add_listener(lambda snap: ready_flags.append((snap.state, snap.is_model_ready)))

        manager.request_download()
        manager.confirm()
        assert manager.state is ModelState.ERROR

        fetcher.fail = False
        manager.retry()
        manager.confirm()
        assert manager.state is ModelState.DOWNLOADED

        manager.load()
        assert manager.state is ModelState.READY
        assert manager.is_model_ready
        assert [ready for state, ready in ready_flags if ready] == [True]
        assert ready_flags[-1] == (ModelState.READY, True)

    def test_confirm_from_error_is_the_retry_path(self, asset, engine):
        fetcher = FakeFetcher(fail=True)
        manager = ModelLifecycleManager(asset, engine, fetcher)
        manager.request_download()
        manager.confirm()

        fetcher.fail = False
        assert manager.confirm()
        assert manager.state is ModelState.DOWNLOADED

    def test_handle_invariant_holds_after_every_transition(self, asset, engine):
        fetcher = FakeFetcher(fail=True)
        manager = ModelLifecycleManager(asset, engine, fetcher)
        seen = []
        manager.add_listener(seen.append)

        steps = [
            manager.request_download,
            manager.cancel,
            manager.request_download,
            manager.confirm,
            manager.retry,
            lambda: setattr(fetcher, "fail", False),
            manager.retry,
            manager.load,
            manager.load,
            manager.release,
            manager.release,
            manager.load,
            lambda: setattr(engine, "fail_load", True),
            manager.load,
            manager.cancel,
        ]
        for step in steps:
            step()
            _check_handle_invariant(manager)
            for snap in seen:
                assert snap.is_model_ready == (snap.state is ModelState.READY)

        assert ModelState.READY in {snap.state for snap in seen}
        assert manager.state is ModelState.IDLE

    def test_listener_exception_does_not_break_transition(self, manager):
        def bad(snapshot):
            raise RuntimeError("listener bug")
        manager.add_listener(bad)

        manager.request_download()

        assert manager.state is ModelState.AWAITING_CONSENT

    def test_remove_listener(self, manager):
        seen = []
        listener = seen.append
        manager.add_listener(listener)
        manager.remove_listener(listener)

        manager.request_download()

        assert seen == []


class UnreadableFetcher(FakeFetcher):
    """Fails every inspection of the local file, as on a permission error."""

    def exists(self, path):
        raise PermissionError(13, "Permission denied")


class TestFileInspectionFailures:

    def test_confirm_moves_to_error(self, asset, engine):
        manager = ModelLifecycleManager(asset, engine, UnreadableFetcher())
        manager.request_download()

        assert manager.confirm() is False

        assert manager.state is ModelState.ERROR
        assert "Permission denied" in manager.error_detail

    def test_error_is_recoverable(self, asset, engine):
        fetcher = UnreadableFetcher()
        manager = ModelLifecycleManager(asset, engine, fetcher)
        manager.request_download()
        manager.confirm()

        assert manager.retry() is False
        assert manager.state is ModelState.ERROR

        manager.cancel()
        assert manager.state is ModelState.IDLE

    def test_load_moves_to_error(self, asset, engine):
        manager = ModelLifecycleManager(asset, engine, UnreadableFetcher())

        assert manager.load() is False

        assert manager.state is ModelState.ERROR
        assert "Permission denied" in manager.error_detail
        assert engine.loaded == []


class TestListeners:

    @pytest.mark.parametrize("intent", ["request_download", "load", "release"])
    def test_listener_runs_without_the_lock(self, ready_manager, intent):
        if intent == "request_download":
            ready_manager.release()
            ready_manager.asset.path.unlink()
            ready_manager.load()
        blocked = []

        def listener(snapshot):
            worker = threading.Thread(target=lambda: ready_manager.is_model_ready)
            worker.start()
            worker.join(timeout=1)
            blocked.append(worker.is_alive())

        ready_manager.add_listener(listener)
        getattr(ready_manager, intent)()

        assert blocked
        assert not any(blocked)

    def test_nan_progress_is_ignored(self, asset, engine):
        fetcher = FakeFetcher(progress=(0.3, float("nan"), 0.5))
        manager = ModelLifecycleManager(asset, engine, fetcher)
        seen = []
        manager.add_listener(lambda snap: seen.append(snap.download_progress))
        manager.request_download()
        seen.clear()

        manager.confirm()

        assert seen == [0.0, 0.3, 0.5, 1.0]
        assert manager.download_progress == 1.0
