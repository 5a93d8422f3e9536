import logging
import os
from pathlib import Path
from typing import Callable

import requests

from .errors import DownloadError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class ModelFetcher:
    """Downloads the model file over HTTP and answers questions about local files."""

    def __init__(self, timeout: float = 30.0, chunk_size: int = 1024 * 1024, session: requests.Session | None = None):
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()

    def exists(self, path: str | os.PathLike) -> bool:
        return Path(path).is_file()

    def size_of(self, path: str | os.PathLike) -> int:
        try:
            return Path(path).stat().st_size
        except OSError:
            return 0

    def download(self, url: str, dest_path: str | os.PathLike, on_progress: ProgressCallback | None = None) -> str:
        """Stream url into dest_path, reporting the completed fraction.

        The body is written to a ".part" file next to the destination and
        moved into place only once complete.

        Returns:
            The destination path as a string.

        Raises:
            DownloadError: On any network or filesystem failure.
        """
        dest = Path(dest_path)
        partial = dest.with_name(dest.name + ".part")
        logger.info(f"Downloading {url} -> {dest}")

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length") or 0)
                received = 0
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if not chunk:
                            continue
                        f.write(chunk)
                        received += len(chunk)
                        if on_progress and total:
                            on_progress(min(received / total, 1.0))
            if total and received < total:
                raise DownloadError(f"Download incomplete: received {received} of {total} bytes")
            os.replace(partial, dest)
        except (requests.RequestException, OSError) as e:
            partial.unlink(missing_ok=True)
            raise DownloadError(f"Failed to download model: {e}") from e
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        if on_progress:
            on_progress(1.0)
        logger.info(f"Download complete: {dest} ({received} bytes)")
        return str(dest)
