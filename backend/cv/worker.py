"""Frame admission (one frame in flight, drop the rest) and debug capture."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Callable, Optional

import numpy as np

from common.config import DEBUG_CAPTURE_DIR
from cv import config
from cv.exceptions import FrameInFlightError
from cv.pipeline import FramePipeline
from cv.preprocessing import validate_frame
from cv.types import FrameResult
from storage.media import save_debug_image

logger = logging.getLogger(__name__)

FrameCallback = Callable[[FrameResult], None]


def offer_latest(queue_obj: Queue, item) -> None:
    """Keep queue non-blocking and biased toward newest data."""
    try:
        queue_obj.put_nowait(item)
    except Full:
        try:
            queue_obj.get_nowait()
            queue_obj.put_nowait(item)
        except (Empty, Full):
            pass


class FrameWorker:
    """Runs `FramePipeline.process` off the caller's thread, one frame at a time.

    The busy flag is raised before dispatch and lowered only after the callback
    has fired. Frames submitted in between are dropped, not queued.
    """

    def __init__(self, pipeline: FramePipeline, max_workers: int = 1):
        self.pipeline = pipeline
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="frame-worker")
        self._lock = threading.Lock()
        self._busy = False
        self.results: Queue = Queue(maxsize=config.RESULT_QUEUE_SIZE)
        self.latest: Optional[FrameResult] = None
        self.processed_count = 0
        self.dropped_count = 0

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    def submit(self, frame: np.ndarray, callback: FrameCallback | None = None) -> Future | None:
        """Dispatch a frame, or return None if one is already in flight.

        Raises InvalidFrameError before dispatch for empty or non-colour frames.
        """
        validate_frame(frame)
        with self._lock:
            if self._busy:
                self.dropped_count += 1
                return None
            self._busy = True
        try:
            return self._executor.submit(self._run, frame, callback)
        except RuntimeError:
            # Executor already shut down.
            with self._lock:
                self._busy = False
            raise

    def _run(self, frame: np.ndarray, callback: FrameCallback | None) -> FrameResult:
        try:
            result = self.pipeline.process(frame)
            self.latest = result
            self.processed_count += 1
            offer_latest(self.results, result)
            if callback is not None:
                try:
                    callback(result)
                except Exception:
                    logger.exception("Frame callback failed")
            return result
        finally:
            with self._lock:
                self._busy = False

    def latest_overlay(self) -> Optional[np.ndarray]:
        result = self.latest
        return None if result is None else result.overlay

    def take_overlay(self) -> Optional[np.ndarray]:
        """Pop the newest unread result's overlay, or None when nothing new arrived."""
        try:
            result = self.results.get_nowait()
        except Empty:
            return None
        return result.overlay

    def reset(self) -> None:
        """Clear both traces. Refused while a frame is in flight."""
        with self._lock:
            if self._busy:
                raise FrameInFlightError("Cannot reset while a frame is being processed")
            self.pipeline.reset()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class DebugCaptureLoop:
    """Periodically saves overlays pulled from `source` to disk until stopped or capped."""

    def __init__(
        self,
        source: Callable[[], Optional[np.ndarray]],
        interval: float = config.DEBUG_CAPTURE_INTERVAL_SEC,
        max_images: int = config.DEBUG_CAPTURE_MAX_IMAGES,
        directory: Path = DEBUG_CAPTURE_DIR,
        label: str = config.DEBUG_CAPTURE_LABEL,
    ):
        self._source = source
        self.interval = interval
        self.max_images = max_images
        self.directory = Path(directory)
        self.label = label
        self.captured = 0
        self.saved_paths: list[Path] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="debug-capture", daemon=True)
        self._thread.start()
        logger.info("Debug capture started (every %.3fs, max %d images)", self.interval, self.max_images)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Debug capture stopped after %d images", self.captured)

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            if self.captured >= self.max_images:
                logger.info("Debug capture limit of %d images reached", self.max_images)
                return
            image = self._source()
            if image is None:
                continue
            try:
                path = save_debug_image(image, f"{self.label}_{self.captured}", self.directory)
            except OSError:
                logger.exception("Failed to save debug image")
                continue
            self.saved_paths.append(path)
            self.captured += 1
