"""Export controller for wallrus.

Runs one-shot export and wallpaper jobs on a dedicated background worker so
the preview keeps animating. Requests are frozen, so the job works on the
exact snapshot the user clicked on; exports always use deterministic grain.
"""

from __future__ import annotations

import logging
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from wallrus.export import ExportFormat, ResolutionTier, export_image
from wallrus.types import RenderRequest
from wallrus.wallpaper import WallpaperFiles, WallpaperHook, install_wallpaper, prepare_wallpaper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportOutcome:
    """Result of a finished export job, handed to the completion callback."""

    kind: str  # 'export' or 'wallpaper'
    result: Any = None  # Path or WallpaperFiles on success
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


OutcomeCallback = Callable[[ExportOutcome], None]


class ExportController:
    """Controller for export and wallpaper jobs."""

    def __init__(
        self,
        on_complete: Optional[OutcomeCallback] = None,
        *,
        use_gpu: bool = False,
    ):
        self.on_complete = on_complete
        self.use_gpu = use_gpu
        self.export_executor: ThreadPoolExecutor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="wallrus-export"
        )
        self.export_future: Optional[Future] = None

    def start_export(
        self,
        request: RenderRequest,
        path: Path,
        fmt: Optional[ExportFormat] = None,
        tier: Optional[ResolutionTier] = None,
        display_size: Optional[tuple[int, int]] = None,
    ) -> Future:
        """Export request to path in the background.

        Returns:
            Future resolving to the written Path; errors are raised from result()
        """
        path = Path(path)
        logger.info("Exporting %dx%d request to %s", request.width, request.height, path)

        def export_job() -> Path:
            return export_image(
                request, path, fmt=fmt, tier=tier, display_size=display_size, use_gpu=self.use_gpu
            )

        return self._submit("export", export_job)

    def start_wallpaper(
        self,
        light: RenderRequest,
        dark: Optional[RenderRequest] = None,
        *,
        directory: Path,
        hook: Optional[WallpaperHook] = None,
        fmt: ExportFormat = ExportFormat.PNG,
        tier: Optional[ResolutionTier] = None,
        display_size: Optional[tuple[int, int]] = None,
    ) -> Future:
        """Render wallpaper files in the background, then call hook (if given).

        Returns:
            Future resolving to WallpaperFiles
        """

        def wallpaper_job() -> WallpaperFiles:
            files = prepare_wallpaper(
                light,
                dark,
                directory=directory,
                fmt=fmt,
                tier=tier,
                display_size=display_size,
                use_gpu=self.use_gpu,
            )
            if hook is not None:
                install_wallpaper(files, hook)
            return files

        return self._submit("wallpaper", wallpaper_job)

    def shutdown(self, wait: bool = False) -> None:
        """Shutdown the export executor."""
        self.export_executor.shutdown(wait=wait)

    def _submit(self, kind: str, job: Callable[[], Any]) -> Future:
        def on_done(future: Future) -> None:
            """Report completion; failures are logged and passed on, never dropped."""
            if future.cancelled():
                outcome = ExportOutcome(kind, error=CancelledError())
                logger.info("%s job cancelled", kind.capitalize())
            else:
                error = future.exception()
                if error is None:
                    outcome = ExportOutcome(kind, result=future.result())
                    logger.info("%s finished: %s", kind.capitalize(), outcome.result)
                else:
                    outcome = ExportOutcome(kind, error=error)
                    logger.error("%s failed: %s", kind.capitalize(), error)
            if self.on_complete is not None:
                self.on_complete(outcome)

        self.export_future = self.export_executor.submit(job)
        self.export_future.add_done_callback(on_done)
        return self.export_future
