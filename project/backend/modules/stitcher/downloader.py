"""
File download logic for stitcher module.

Fetches source clips over HTTP into the scratch workspace, one at a time and
in request order.
"""
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import httpx

from shared.config import settings
from shared.errors import DownloadFailure
from shared.logging import get_logger
from .config import INPUT_FILENAME

logger = get_logger("stitcher.downloader")

ClipDownloadedCallback = Callable[[int, int], Awaitable[None]]


async def download_clip(
    url: str,
    dest_path: Path,
    client: httpx.AsyncClient,
    clip_index: int = 0
) -> Path:
    """
    Download one clip and write the full body to dest_path.

    Args:
        url: Absolute, already validated clip URL
        dest_path: File to create
        client: HTTP client to use
        clip_index: Position of the clip (for error messages)

    Returns:
        dest_path

    Raises:
        DownloadFailure: On a non-2xx status or a network error
    """
    try:
        # Redirect targets are never allow-listed, so a 3xx is a failure
        async with client.stream("GET", url, follow_redirects=False) as response:
            if not 200 <= response.status_code < 300:
                raise DownloadFailure(
                    f"Failed to download clip {clip_index + 1}: {url} ({response.status_code})",
                    status=response.status_code,
                    clip_index=clip_index
                )
            with open(dest_path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
    except httpx.TimeoutException as e:
        raise DownloadFailure(
            f"Timeout downloading clip {clip_index + 1}: {url}",
            clip_index=clip_index
        ) from e
    except httpx.HTTPError as e:
        raise DownloadFailure(
            f"Network error downloading clip {clip_index + 1}: {url} ({e})",
            clip_index=clip_index
        ) from e

    size = dest_path.stat().st_size
    if size > 200 * 1024 * 1024:  # Warn if >200MB
        logger.warning(
            f"Clip {clip_index} is large: {size / 1024 / 1024:.2f} MB",
            extra={"clip_index": clip_index}
        )
    return dest_path


async def download_all_clips(
    urls: List[str],
    temp_dir: Path,
    client: Optional[httpx.AsyncClient] = None,
    on_clip_start: Optional[ClipDownloadedCallback] = None
) -> List[Path]:
    """
    Download all clips sequentially into temp_dir.

    Args:
        urls: Validated clip URLs in film order
        temp_dir: Scratch workspace
        client: Optional HTTP client (a new one is created otherwise)
        on_clip_start: Awaited with (index, total) before each download

    Returns:
        Paths of the downloaded clips (in order)

    Raises:
        DownloadFailure: On the first failed download; no retries
    """
    owns_client = client is None
    if owns_client:
        timeout = httpx.Timeout(settings.download_timeout or None, connect=30.0)
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=False)

    paths: List[Path] = []
    try:
        for index, url in enumerate(urls):
            if on_clip_start is not None:
                await on_clip_start(index, len(urls))
            logger.info(
                f"Downloading clip {index + 1}/{len(urls)}",
                extra={"clip_index": index, "url": url}
            )
            dest_path = temp_dir / INPUT_FILENAME.format(index=index)
            paths.append(await download_clip(url, dest_path, client, clip_index=index))
    finally:
        if owns_client:
            await client.aclose()

    logger.info(f"Downloaded {len(paths)} clips", extra={"count": len(paths)})
    return paths
