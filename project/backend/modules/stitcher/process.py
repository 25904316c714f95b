"""
Main entry point for stitcher module.

Orchestrates a stitch request: validates the clip list, downloads clips,
probes and normalizes them one by one, concatenates them, and hands the
output to the caller as a StitchArtifact that owns the scratch workspace.
"""
import asyncio
import contextlib
import inspect
import time
from typing import Awaitable, Callable, List, Optional, Union

import httpx

from shared.config import settings
from shared.errors import EngineUnavailable, PipelineError, StitchError, ValidationError
from shared.logging import get_logger, set_stitch_id
from shared.models.stitch import StitchRequest
from shared.validation import resolve_clip_urls, sanitize_filename, validate_clip_count

from .concatenator import concatenate_clips
from .downloader import download_all_clips
from .normalizer import normalize_clip
from .prober import probe_media
from .utils import resolve_ffmpeg_binary
from .workspace import ScratchWorkspace, StitchArtifact, StitchRun, StitchState

logger = get_logger("stitcher.process")

ProgressCallback = Callable[[int, str], Union[None, Awaitable[None]]]

# Semaphores bind to the event loop that first waits on them
_admission_loop: Optional[asyncio.AbstractEventLoop] = None
_admission_semaphore: Optional[asyncio.Semaphore] = None


def _admission():
    """Per-process limit on concurrently running pipelines."""
    global _admission_loop, _admission_semaphore
    if settings.max_concurrent_stitches <= 0:
        return contextlib.nullcontext()
    loop = asyncio.get_running_loop()
    if _admission_semaphore is None or _admission_loop is not loop:
        _admission_loop = loop
        _admission_semaphore = asyncio.Semaphore(settings.max_concurrent_stitches)
    return _admission_semaphore


async def publish_progress(
    progress_callback: Optional[ProgressCallback],
    progress: int,
    message: str
) -> None:
    """
    Report progress to the caller.

    Args:
        progress_callback: Sync or async callable taking (percent, message)
        progress: Percent complete (0-100)
        message: Progress message
    """
    logger.debug(message, extra={"progress": progress})
    if progress_callback is None:
        return
    result = progress_callback(progress, message)
    if inspect.isawaitable(result):
        await result


def validate_request(request: StitchRequest, origin: str) -> List[str]:
    """
    Validate a stitch request before any work is done.

    Returns:
        Resolved clip URLs in film order

    Raises:
        ValidationError: If there are fewer than 2 clips or a URL is not allowed
    """
    clips = request.effective_clips()
    validate_clip_count(len(clips))
    return resolve_clip_urls(
        [clip.url for clip in clips],
        origin,
        settings.trusted_storage_suffixes
    )


async def process(
    request: StitchRequest,
    origin: str,
    progress_callback: Optional[ProgressCallback] = None,
    http_client: Optional[httpx.AsyncClient] = None
) -> StitchArtifact:
    """
    Main stitch function.

    Args:
        request: Clips and global options
        origin: Origin of the service, used to resolve and allow-list clip URLs
        progress_callback: Optional (percent, message) callback
        http_client: Optional HTTP client for clip downloads

    Returns:
        StitchArtifact owning the scratch workspace. The caller must stream
        it (iter_bytes), save it (save_to) or close it (aclose).

    Raises:
        ValidationError: Bad input; nothing was downloaded
        EngineUnavailable: FFmpeg is missing
        StitchError: Any download, probe, normalize or concat failure
    """
    run = StitchRun()
    set_stitch_id(run.stitch_id)

    try:
        urls = validate_request(request, origin)
    except ValidationError as e:
        run.fail()
        logger.warning(f"Rejected stitch request: {e}")
        raise

    clips = request.effective_clips()
    audio_enabled = request.audio.enabled

    await publish_progress(progress_callback, 0, "Loading engine...")
    try:
        resolve_ffmpeg_binary()
    except EngineUnavailable:
        run.fail()
        logger.error("FFmpeg unavailable", exc_info=True)
        raise

    timings = {
        "download_clips": 0.0,
        "normalize_clips": 0.0,
        "concatenate": 0.0,
        "total": 0.0
    }
    start_time = time.time()

    async with _admission():
        workspace = ScratchWorkspace.create()
        succeeded = False
        try:
            temp_dir = workspace.path

            # Step 1: Download clips (sequential, in order) - 5-40%
            run.transition(StitchState.FETCHING_CLIPS)
            step_start = time.time()

            async def on_clip_start(index: int, total: int) -> None:
                await publish_progress(
                    progress_callback,
                    5 + int(35 * index / total),
                    f"Downloading clip {index + 1}/{total}..."
                )

            input_paths = await download_all_clips(
                urls, temp_dir, client=http_client, on_clip_start=on_clip_start
            )
            timings["download_clips"] = time.time() - step_start

            # Step 2: Probe and normalize each clip - 40-85%
            run.transition(StitchState.PROBING_AND_NORMALIZING)
            step_start = time.time()
            normalized_paths = []
            for index, (input_path, clip) in enumerate(zip(input_paths, clips)):
                await publish_progress(
                    progress_callback,
                    40 + int(45 * index / len(clips)),
                    f"Normalizing clip {index + 1}/{len(clips)}..."
                )
                probed = await probe_media(input_path, temp_dir)
                normalized_paths.append(
                    await normalize_clip(
                        input_path, clip, probed, audio_enabled, request.post, index, temp_dir
                    )
                )
            timings["normalize_clips"] = time.time() - step_start

            # Step 3: Concatenate - 85-95%
            run.transition(StitchState.CONCATENATING)
            await publish_progress(progress_callback, 85, "Stitching...")
            step_start = time.time()
            output_path = await concatenate_clips(normalized_paths, audio_enabled, temp_dir)
            timings["concatenate"] = time.time() - step_start

            await publish_progress(progress_callback, 95, "Finalizing...")
            artifact = StitchArtifact(
                path=output_path,
                size=output_path.stat().st_size,
                filename=f"{sanitize_filename(request.title)}_stitched.mp4",
                workspace=workspace,
                run=run
            )
            timings["total"] = time.time() - start_time

            logger.info(
                f"Stitch complete: {artifact.size / 1024 / 1024:.2f} MB, {timings['total']:.2f}s",
                extra={
                    "clips_used": len(clips),
                    "size_mb": artifact.size / 1024 / 1024,
                    "audio_enabled": audio_enabled,
                    "timings": timings
                }
            )
            succeeded = True
            return artifact

        except PipelineError:
            logger.error("Stitch failed", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Unexpected stitch error: {e}", exc_info=True)
            raise StitchError(f"Unexpected error during stitching: {e}") from e
        finally:
            if not succeeded:
                run.fail()
                workspace.cleanup()
