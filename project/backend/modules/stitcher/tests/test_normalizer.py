"""
Unit tests for clip normalization.
"""
from unittest.mock import AsyncMock, patch

import pytest

from modules.stitcher.filters import ColorAdjust
from modules.stitcher.normalizer import (
    EditWindow,
    build_audio_graph,
    build_normalize_args,
    normalize_clip,
    resolve_edit_window,
)
from shared.errors import EngineFailure, EngineUnavailable, NormalizeFailure
from shared.models.stitch import ClipSpec, PostOptions, ProbedMedia


def _window(**overrides) -> EditWindow:
    values = dict(speed=1.0, trim_start=0.0, trim_end=5.0, fade_in=0.0, fade_out=0.0)
    values.update(overrides)
    return EditWindow(**values)


class TestResolveEditWindow:
    """Tests for resolve_edit_window function."""

    def test_defaults(self):
        window = resolve_edit_window(ClipSpec(url="x"), ProbedMedia(duration_sec=5.0, has_audio=True))
        assert window.speed == 1.0
        assert window.trim_start == 0.0
        assert window.trim_end == 5.0
        assert window.out_duration == pytest.approx(5.0)

    def test_trim_and_speed(self):
        spec = ClipSpec(url="x", trim_start_sec=2, trim_end_sec=8, speed=2, fade_out_sec=1)
        window = resolve_edit_window(spec, ProbedMedia(duration_sec=10.0, has_audio=False))
        assert window.out_duration == pytest.approx(3.0)
        assert window.fade_out_start == pytest.approx(2.0)

    @pytest.mark.parametrize("speed,expected", [(2.5, 2.0), (0.1, 0.25), (None, 1.0), (1.5, 1.5)])
    def test_speed_clamped(self, speed, expected):
        window = resolve_edit_window(ClipSpec(url="x", speed=speed), ProbedMedia(duration_sec=4.0, has_audio=False))
        assert window.speed == expected

    def test_trim_start_beyond_duration(self):
        spec = ClipSpec(url="x", trim_start_sec=99)
        window = resolve_edit_window(spec, ProbedMedia(duration_sec=4.0, has_audio=False))
        assert window.trim_start == pytest.approx(3.99)
        assert window.trim_end == 4.0

    def test_trim_end_before_start(self):
        spec = ClipSpec(url="x", trim_start_sec=2, trim_end_sec=1)
        window = resolve_edit_window(spec, ProbedMedia(duration_sec=4.0, has_audio=False))
        assert window.trim_end == pytest.approx(2.01)
        assert window.out_duration > 0

    def test_trim_end_beyond_duration(self):
        spec = ClipSpec(url="x", trim_end_sec=30)
        window = resolve_edit_window(spec, ProbedMedia(duration_sec=4.0, has_audio=False))
        assert window.trim_end == 4.0

    def test_fades_clamped(self):
        spec = ClipSpec(url="x", fade_in_sec=7, fade_out_sec=-1)
        window = resolve_edit_window(spec, ProbedMedia(duration_sec=10.0, has_audio=False))
        assert window.fade_in == 5.0
        assert window.fade_out == 0.0


class TestBuildAudioGraph:
    """Tests for build_audio_graph function."""

    def test_silent_source(self):
        graph = build_audio_graph(_window(), has_audio=False)
        assert graph == "[1:a]atrim=0:5,asetpts=PTS-STARTPTS[a]"

    def test_source_mixed_over_silence(self):
        graph = build_audio_graph(_window(speed=2.0, trim_end=8.0), has_audio=True)
        parts = graph.split(";")
        assert parts[0].startswith("[0:a:0]atempo=2,")
        assert parts[0].endswith("aformat=sample_rates=48000:channel_layouts=stereo[a0]")
        assert parts[1] == "[1:a]atrim=0:4,asetpts=PTS-STARTPTS[a1]"
        assert parts[2] == "[a0][a1]amix=inputs=2:duration=longest:dropout_transition=0[a]"

    def test_quarter_speed_chains_atempo(self):
        graph = build_audio_graph(_window(speed=0.25), has_audio=True)
        assert "atempo=0.5,atempo=0.5" in graph


class TestBuildNormalizeArgs:
    """Tests for build_normalize_args function."""

    def test_audio_disabled(self):
        args = build_normalize_args(
            "input0.mp4", "clip0.mp4", _window(trim_start=1.0, trim_end=3.5),
            has_audio=True, audio_enabled=False, color=ColorAdjust()
        )

        assert args[:7] == ["-y", "-ss", "1", "-to", "3.5", "-i", "input0.mp4"]
        assert "-vf" in args
        assert "-filter_complex" not in args
        assert "anullsrc=r=48000:cl=stereo" not in args
        assert args[-2:] == ["-an", "clip0.mp4"]
        assert args[args.index("-c:v") + 1] == "libx264"
        assert args[args.index("-pix_fmt") + 1] == "yuv420p"
        assert args[args.index("-movflags") + 1] == "+faststart"

    def test_audio_enabled_without_source_audio(self):
        args = build_normalize_args(
            "input1.mp4", "clip1.mp4", _window(trim_end=3.0),
            has_audio=False, audio_enabled=True, color=ColorAdjust()
        )

        assert args[args.index("-f") + 1] == "lavfi"
        assert "anullsrc=r=48000:cl=stereo" in args
        graph = args[args.index("-filter_complex") + 1]
        assert graph.startswith("[0:v:0]scale=trunc(iw/2)*2:trunc(ih/2)*2,setpts=PTS/1[v];")
        assert graph.endswith("[1:a]atrim=0:3,asetpts=PTS-STARTPTS[a]")
        assert "[0:a:0]" not in graph
        assert args.count("-map") == 2
        assert args[args.index("-c:a") + 1] == "aac"
        assert args[args.index("-ar") + 1] == "48000"
        assert args[args.index("-ac") + 1] == "2"
        assert args[-2:] == ["-shortest", "clip1.mp4"]

    def test_color_applied(self):
        args = build_normalize_args(
            "input0.mp4", "clip0.mp4", _window(),
            has_audio=False, audio_enabled=False,
            color=ColorAdjust.from_options(PostOptions(saturation=2))
        )
        video_filter = args[args.index("-vf") + 1]
        assert "eq=brightness=0:contrast=1:saturation=2" in video_filter


class TestNormalizeClip:
    """Tests for normalize_clip function."""

    @pytest.mark.asyncio
    async def test_normalize_success(self, tmp_path):
        async def fake_run(args, cwd, **kwargs):
            (cwd / args[-1]).write_bytes(b"normalized")
            return ""

        with patch('modules.stitcher.normalizer.run_ffmpeg_command', new=AsyncMock(side_effect=fake_run)) as mock_run:
            output = await normalize_clip(
                tmp_path / "input2.mp4",
                ClipSpec(url="x", speed=1.5),
                ProbedMedia(duration_sec=6.0, has_audio=True),
                audio_enabled=True,
                post=None,
                clip_index=2,
                temp_dir=tmp_path
            )

        assert output == tmp_path / "clip2.mp4"
        assert output.exists()
        args = mock_run.call_args[0][0]
        assert "input2.mp4" in args
        assert mock_run.call_args[1]["cwd"] == tmp_path

    @pytest.mark.asyncio
    @patch('modules.stitcher.normalizer.run_ffmpeg_command', new_callable=AsyncMock)
    async def test_engine_failure(self, mock_run, tmp_path):
        mock_run.side_effect = EngineFailure("ffmpeg failed (code 1). bad filter", exit_code=1, diagnostic_tail="bad filter")

        with pytest.raises(NormalizeFailure, match="Failed to normalize clip 1") as exc_info:
            await normalize_clip(
                tmp_path / "input0.mp4", ClipSpec(url="x"),
                ProbedMedia(duration_sec=2.0, has_audio=False),
                audio_enabled=False, post=None, clip_index=0, temp_dir=tmp_path
            )
        assert exc_info.value.diagnostic_tail == "bad filter"

    @pytest.mark.asyncio
    @patch('modules.stitcher.normalizer.run_ffmpeg_command', new_callable=AsyncMock)
    async def test_missing_output(self, mock_run, tmp_path):
        mock_run.return_value = ""

        with pytest.raises(NormalizeFailure, match="Normalized clip not created"):
            await normalize_clip(
                tmp_path / "input0.mp4", ClipSpec(url="x"),
                ProbedMedia(duration_sec=2.0, has_audio=False),
                audio_enabled=False, post=None, clip_index=0, temp_dir=tmp_path
            )

    @pytest.mark.asyncio
    @patch('modules.stitcher.normalizer.run_ffmpeg_command', new_callable=AsyncMock)
    async def test_engine_unavailable_propagates(self, mock_run, tmp_path):
        mock_run.side_effect = EngineUnavailable("FFmpeg not found")

        with pytest.raises(EngineUnavailable):
            await normalize_clip(
                tmp_path / "input0.mp4", ClipSpec(url="x"),
                ProbedMedia(duration_sec=2.0, has_audio=False),
                audio_enabled=False, post=None, clip_index=0, temp_dir=tmp_path
            )
