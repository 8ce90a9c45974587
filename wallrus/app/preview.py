"""Live preview loop.

A frame clock ticks at PREVIEW_FPS on a daemon thread. Each tick snapshots
the settings under the lock, builds a RenderRequest for the current
animation time and hands it to a single render worker. At most one frame
is in flight: a tick that finds the worker busy is skipped.

update() swaps settings and cancels the in-flight frame; the render stops
at its next band boundary and the cancelled frame is dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Callable, Optional

import numpy as np

from wallrus import defaults
from wallrus.app.core import PreviewSettings
from wallrus.errors import CancelledRender
from wallrus.pipeline import render, resample_buffer
from wallrus.serialization import compute_request_fingerprint
from wallrus.types import CancelToken, PixelBuffer, RenderRequest

logger = logging.getLogger(__name__)

FrameCallback = Callable[[PixelBuffer, RenderRequest], None]
ErrorCallback = Callable[[BaseException], None]


def clamp_render_scale(scale: float) -> float:
    try:
        scale = float(scale)
    except (TypeError, ValueError):
        return defaults.PREVIEW_RENDER_SCALE
    if scale != scale:
        return defaults.PREVIEW_RENDER_SCALE
    return min(max(scale, defaults.MIN_PREVIEW_RENDER_SCALE), defaults.MAX_PREVIEW_RENDER_SCALE)


class PreviewLoop:
    """Drives the animated preview for one display surface."""

    def __init__(
        self,
        settings: PreviewSettings,
        surface_size: tuple[int, int],
        on_frame: FrameCallback,
        on_error: Optional[ErrorCallback] = None,
        *,
        fps: float = defaults.PREVIEW_FPS,
        render_scale: float = defaults.PREVIEW_RENDER_SCALE,
        use_gpu: bool = False,
        grain_rng: Optional[np.random.Generator] = None,
        _clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._surface_size = (int(surface_size[0]), int(surface_size[1]))
        self._on_frame = on_frame
        self._on_error = on_error
        self._fps = max(float(fps), 1.0)
        self._render_scale = clamp_render_scale(render_scale)
        self._use_gpu = use_gpu
        self._grain_rng = grain_rng if grain_rng is not None else np.random.default_rng()
        self._clock = _clock

        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="wallrus-preview")
        self._future: Optional[Future] = None
        self._token: Optional[CancelToken] = None
        self._last_fingerprint: Optional[str] = None

        # Animation clock: elapsed = now - start - paused_total
        self._start_time = self._clock()
        self._paused_total = 0.0
        self._paused_at: Optional[float] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def settings(self) -> PreviewSettings:
        with self._lock:
            return self._settings

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused_at is not None

    @property
    def render_scale(self) -> float:
        with self._lock:
            return self._render_scale

    def current_time(self) -> float:
        """Animation time in seconds (frozen while paused)."""
        with self._lock:
            return self._elapsed_locked()

    def update(self, **changes) -> PreviewSettings:
        """Replace settings fields and cancel the in-flight frame.

        Raises:
            TypeError: Unknown field name
        """
        with self._lock:
            self._settings = replace(self._settings, **changes)
            self._cancel_locked()
            return self._settings

    def set_settings(self, settings: PreviewSettings) -> None:
        with self._lock:
            self._settings = settings
            self._cancel_locked()

    def set_surface_size(self, width: int, height: int) -> None:
        with self._lock:
            self._surface_size = (int(width), int(height))
            self._cancel_locked()

    def set_render_scale(self, scale: float) -> None:
        with self._lock:
            self._render_scale = clamp_render_scale(scale)
            self._cancel_locked()

    def pause(self) -> None:
        with self._lock:
            if self._paused_at is None:
                self._paused_at = self._clock()
                logger.debug("Preview paused at t=%.3f", self._elapsed_locked())

    def resume(self) -> None:
        with self._lock:
            if self._paused_at is not None:
                self._paused_total += self._clock() - self._paused_at
                self._paused_at = None
                logger.debug("Preview resumed at t=%.3f", self._elapsed_locked())

    def snapshot_request(self) -> RenderRequest:
        """Request the next frame would render."""
        with self._lock:
            return self._build_request_locked()

    def submit_frame(self) -> Optional[Future]:
        """Schedule one frame (what every clock tick does).

        Returns:
            Future resolving to the delivered PixelBuffer (None when the frame
            was cancelled or failed), or None when the tick was skipped.
        """
        with self._lock:
            if self._future is not None and not self._future.done():
                return None

            request = self._build_request_locked()
            fingerprint = compute_request_fingerprint(request)
            if self._paused_at is not None and fingerprint == self._last_fingerprint:
                return None

            self._last_fingerprint = fingerprint
            token = CancelToken()
            self._token = token
            grain_mode = self._settings.grain_mode
            display_size = self._surface_size
            self._future = self._executor.submit(
                self._run_frame, request, grain_mode, token, display_size, fingerprint
            )
            return self._future

    def start(self) -> None:
        """Start the frame clock thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._tick_loop, name="wallrus-frame-clock", daemon=True)
        self._thread.start()
        logger.debug("Preview loop started at %.1f fps", self._fps)

    def stop(self, wait: bool = True) -> None:
        """Stop the frame clock, cancel the in-flight frame and release the worker."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        with self._lock:
            self._cancel_locked()
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _elapsed_locked(self) -> float:
        now = self._paused_at if self._paused_at is not None else self._clock()
        return max(now - self._start_time - self._paused_total, 0.0)

    def _cancel_locked(self) -> None:
        if self._token is not None:
            self._token.cancel()

    def _build_request_locked(self) -> RenderRequest:
        width, height = self._surface_size
        render_w = max(int(round(width * self._render_scale)), 1)
        render_h = max(int(round(height * self._render_scale)), 1)
        return self._settings.to_request(render_w, render_h, self._elapsed_locked())

    def _tick_loop(self) -> None:
        interval = 1.0 / self._fps
        while not self._stop_event.wait(interval):
            try:
                self.submit_frame()
            except Exception as e:
                logger.error("Failed to schedule preview frame: %s", e)
                self._report_error(e)

    def _run_frame(
        self,
        request: RenderRequest,
        grain_mode,
        token: CancelToken,
        display_size: tuple[int, int],
        fingerprint: str,
    ) -> Optional[PixelBuffer]:
        try:
            buffer = render(
                request,
                grain_mode=grain_mode,
                cancel_token=token,
                use_gpu=self._use_gpu,
                grain_rng=self._grain_rng,
            )
            if buffer.size != display_size:
                buffer = resample_buffer(buffer, *display_size)
        except CancelledRender:
            logger.debug("Preview frame cancelled")
            self._forget_fingerprint(fingerprint)
            return None
        except Exception as e:
            logger.error("Preview render failed: %s", e)
            self._report_error(e)
            return None

        # Superseded after the last band check
        if token.cancelled:
            self._forget_fingerprint(fingerprint)
            return None

        try:
            self._on_frame(buffer, request)
        except Exception as e:
            logger.error("Preview frame delivery failed: %s", e)
            self._report_error(e)
            return None
        return buffer

    def _forget_fingerprint(self, fingerprint: str) -> None:
        # A dropped frame was never shown, so a paused preview must render it again
        with self._lock:
            if self._last_fingerprint == fingerprint:
                self._last_fingerprint = None

    def _report_error(self, error: BaseException) -> None:
        if self._on_error is not None:
            self._on_error(error)
