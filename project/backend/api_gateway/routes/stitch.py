"""
Stitch endpoint.

Runs the stitch pipeline and streams the finished MP4 back to the caller.
"""

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from shared.config import settings
from shared.errors import EngineUnavailable, PipelineError, ValidationError
from shared.logging import get_logger
from shared.models.stitch import StitchRequest
from modules.stitcher.process import process

logger = get_logger(__name__)

router = APIRouter()


def request_origin(request: Request) -> str:
    """Origin clip URLs are resolved against (PUBLIC_ORIGIN wins over the request)."""
    if settings.public_origin:
        return settings.public_origin
    return f"{request.url.scheme}://{request.url.netloc}"


def _log_progress(progress: int, message: str) -> None:
    logger.info(message, extra={"progress": progress})


@router.post("/stitch")
async def stitch_videos(body: StitchRequest, request: Request):
    """
    Stitch clips into one video.

    Streaming starts only after the whole pipeline has succeeded; any failure
    before that is returned as a JSON error.

    Args:
        body: Clips and global options

    Returns:
        The stitched MP4 as an attachment
    """
    try:
        artifact = await process(
            body,
            origin=request_origin(request),
            progress_callback=_log_progress
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except EngineUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    except PipelineError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)

    logger.info(
        "Streaming stitched video",
        extra={"download_name": artifact.filename, "size": artifact.size}
    )
    return StreamingResponse(
        artifact.iter_bytes(),
        media_type="video/mp4",
        headers=artifact.headers
    )
