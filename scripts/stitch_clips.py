#!/usr/bin/env python3
"""
Stitch clips into one video from the command line.

Runs the same pipeline as POST /api/stitch and writes the result to a file.

Usage:
    python scripts/stitch_clips.py URL URL [URL ...] -o film.mp4 [options]

Example:
    python scripts/stitch_clips.py \
        https://store.public.blob.vercel-storage.com/a.mp4 \
        https://store.public.blob.vercel-storage.com/b.mp4 \
        --title "My Film" --audio --speed 1.5 --fade-in 0.5 -o film.mp4

Note: relative URLs resolve against PUBLIC_ORIGIN (default http://localhost).
"""
import argparse
import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
project_root = Path(__file__).parent.parent
env_paths = [
    project_root / ".env",
    project_root / "project" / "backend" / ".env",
]

for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    load_dotenv()

# Add project root to path
sys.path.insert(0, str(project_root / "project" / "backend"))

from shared.errors import PipelineError
from shared.models.stitch import AudioOptions, ClipSpec, PostOptions, StitchRequest
from modules.stitcher.local import stitch_to_file


def build_request(args: argparse.Namespace) -> StitchRequest:
    """Apply the same edit directives to every clip."""
    clips = [
        ClipSpec(
            url=url,
            speed=args.speed,
            fade_in_sec=args.fade_in,
            fade_out_sec=args.fade_out,
        )
        for url in args.urls
    ]
    return StitchRequest(
        clips=clips,
        title=args.title,
        audio=AudioOptions(enabled=args.audio),
        post=PostOptions(
            brightness=args.brightness,
            contrast=args.contrast,
            saturation=args.saturation,
        ),
    )


def print_progress(progress: int, message: str) -> None:
    print(f"[{progress:3d}%] {message}", flush=True)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Stitch video clips into one MP4",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("urls", nargs="+", help="Clip URLs in film order (at least 2)")
    parser.add_argument("-o", "--output", type=Path, required=True, help="Output MP4 path")
    parser.add_argument("--title", type=str, default=None, help="Film title")
    parser.add_argument("--audio", action="store_true", help="Keep a 48kHz stereo audio track")
    parser.add_argument("--speed", type=float, default=None, help="Playback speed (0.25-2.0)")
    parser.add_argument("--fade-in", type=float, default=None, help="Fade-in seconds per clip (0-5)")
    parser.add_argument("--fade-out", type=float, default=None, help="Fade-out seconds per clip (0-5)")
    parser.add_argument("--brightness", type=float, default=None, help="Brightness (-1..1)")
    parser.add_argument("--contrast", type=float, default=None, help="Contrast (0..2)")
    parser.add_argument("--saturation", type=float, default=None, help="Saturation (0..3)")
    parser.add_argument("--origin", type=str, default=None, help="Origin for relative URLs")
    args = parser.parse_args()

    try:
        output = asyncio.run(
            stitch_to_file(
                build_request(args),
                args.output,
                origin=args.origin,
                progress_callback=print_progress,
            )
        )
    except PipelineError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1

    print(f"Saved {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
