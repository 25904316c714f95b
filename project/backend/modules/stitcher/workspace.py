"""
Scratch workspace and stitch lifecycle for stitcher module.

A ScratchWorkspace is owned by exactly one stitch request. Ownership moves
from the orchestrator to the StitchArtifact once the pipeline succeeds; the
artifact deletes it when its byte stream terminates for any reason.
"""
import asyncio
import shutil
import tempfile
import weakref
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Dict, FrozenSet, List, Optional
from uuid import UUID, uuid4

from shared.config import settings
from shared.logging import get_logger

logger = get_logger("stitcher.workspace")


class ScratchWorkspace:
    """Uniquely-named temporary directory with idempotent cleanup."""

    def __init__(self, path: Path):
        self.path = path
        # Also fires if the owner is garbage collected without cleaning up,
        # e.g. a response body iterator that was never started
        self._finalizer = weakref.finalize(self, shutil.rmtree, str(path), True)

    @classmethod
    def create(cls, prefix: Optional[str] = None) -> "ScratchWorkspace":
        return cls(Path(tempfile.mkdtemp(prefix=prefix or settings.scratch_prefix)))

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    def cleanup(self) -> None:
        """Delete the directory and everything in it. Safe to call repeatedly."""
        if self._finalizer.alive:
            self._finalizer()
            logger.debug(f"Removed scratch workspace {self.path}", extra={"workspace": str(self.path)})

    def __enter__(self) -> "ScratchWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


class StitchState(str, Enum):
    IDLE = "idle"
    FETCHING_CLIPS = "fetching_clips"
    PROBING_AND_NORMALIZING = "probing_and_normalizing"
    CONCATENATING = "concatenating"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Dict[StitchState, FrozenSet[StitchState]] = {
    StitchState.IDLE: frozenset({StitchState.FETCHING_CLIPS, StitchState.FAILED}),
    StitchState.FETCHING_CLIPS: frozenset({StitchState.PROBING_AND_NORMALIZING, StitchState.FAILED}),
    StitchState.PROBING_AND_NORMALIZING: frozenset({StitchState.CONCATENATING, StitchState.FAILED}),
    StitchState.CONCATENATING: frozenset({StitchState.STREAMING, StitchState.FAILED}),
    StitchState.STREAMING: frozenset({StitchState.DONE, StitchState.FAILED}),
    StitchState.DONE: frozenset(),
    StitchState.FAILED: frozenset(),
}


@dataclass
class StitchRun:
    """State machine of one stitch request."""

    stitch_id: UUID = field(default_factory=uuid4)
    state: StitchState = StitchState.IDLE
    history: List[StitchState] = field(default_factory=lambda: [StitchState.IDLE])

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.state]

    def transition(self, new_state: StitchState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal stitch state transition {self.state.value} -> {new_state.value}")
        logger.info(
            f"Stitch state {self.state.value} -> {new_state.value}",
            extra={"state": new_state.value}
        )
        self.state = new_state
        self.history.append(new_state)

    def fail(self) -> None:
        """Enter FAILED unless already terminal."""
        if not self.is_terminal:
            self.transition(StitchState.FAILED)


@dataclass
class StitchArtifact:
    """A finished stitch: output file plus the workspace that holds it."""

    path: Path
    size: int
    filename: str
    workspace: ScratchWorkspace
    run: StitchRun

    @property
    def headers(self) -> Dict[str, str]:
        """HTTP headers for serving the artifact."""
        return {
            "Content-Length": str(self.size),
            "Content-Disposition": f'attachment; filename="{self.filename}"',
            "Cache-Control": "no-store",
        }

    async def iter_bytes(self, chunk_size: Optional[int] = None) -> AsyncIterator[bytes]:
        """
        Stream the output file, then release the workspace.

        Cleanup runs from `finally`, so it also happens when the consumer
        stops early (client disconnect closes or cancels the generator).
        """
        chunk_size = chunk_size or settings.stream_chunk_size
        self.run.transition(StitchState.STREAMING)
        completed = False
        try:
            with open(self.path, "rb") as f:
                while True:
                    chunk = await asyncio.to_thread(f.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
            completed = True
        finally:
            if completed:
                self.run.transition(StitchState.DONE)
            else:
                logger.warning("Stream ended before completion, releasing workspace")
                self.run.fail()
            self.workspace.cleanup()

    async def save_to(self, dest_path: Path) -> Path:
        """Copy the output file to dest_path, then release the workspace."""
        self.run.transition(StitchState.STREAMING)
        try:
            dest_path = Path(dest_path)
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, self.path, dest_path)
            self.run.transition(StitchState.DONE)
            return dest_path
        finally:
            self.run.fail()
            self.workspace.cleanup()

    async def aclose(self) -> None:
        """Release the artifact without streaming it."""
        self.run.fail()
        self.workspace.cleanup()

    async def __aenter__(self) -> "StitchArtifact":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
