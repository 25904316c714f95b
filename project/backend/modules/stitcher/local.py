"""
Local stitching for stitcher module.

Companion to the HTTP endpoint: runs the same pipeline and writes the film
to a local file while reporting progress.
"""
from pathlib import Path
from typing import Optional

import httpx

from shared.config import settings
from shared.logging import get_logger
from shared.models.stitch import StitchRequest
from .process import ProgressCallback, process, publish_progress

logger = get_logger("stitcher.local")

LOCAL_ORIGIN = "http://localhost"


async def stitch_to_file(
    request: StitchRequest,
    output_path: Path,
    origin: Optional[str] = None,
    progress_callback: Optional[ProgressCallback] = None,
    http_client: Optional[httpx.AsyncClient] = None
) -> Path:
    """
    Stitch clips and save the result to output_path.

    Args:
        request: Clips and global options
        output_path: Destination file (parent directories are created)
        origin: Origin for relative clip URLs (default: PUBLIC_ORIGIN or localhost)
        progress_callback: Optional (percent, message) callback
        http_client: Optional HTTP client for clip downloads

    Returns:
        Path of the written film
    """
    origin = origin or settings.public_origin or LOCAL_ORIGIN
    artifact = await process(
        request,
        origin=origin,
        progress_callback=progress_callback,
        http_client=http_client
    )
    saved_path = await artifact.save_to(Path(output_path))
    await publish_progress(progress_callback, 100, "Done")

    logger.info(
        f"Saved stitched film to {saved_path}",
        extra={"output_path": str(saved_path), "size": artifact.size}
    )
    return saved_path
