"""Exceptions raised around the model lifecycle.

Download and load failures are captured by the lifecycle manager into its
error state. ModelNotReadyError and GenerationError reach the caller.
"""


class LifecycleError(Exception):
    """Base class for model acquisition and inference failures."""


class DownloadError(LifecycleError):
    """The model file could not be fetched or written."""


class AssetMissingError(LifecycleError):
    """A load was attempted without the model file on disk."""


class EngineLoadError(LifecycleError):
    """The inference engine rejected the model file."""


class ModelNotReadyError(LifecycleError):
    """Generation was requested while no model is loaded."""

    def __init__(self, message: str = "Model is not ready"):
        super().__init__(message)


class GenerationError(LifecycleError):
    """The inference engine failed while producing a completion."""
