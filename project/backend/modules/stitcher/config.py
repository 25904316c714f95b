"""
Stitcher configuration.

Encoder settings, edit-parameter bounds, and scratch workspace file names.
Every normalized intermediate is encoded with the same profile so that the
stream-copy concatenation is legal in the common case.
"""

# FFmpeg encoder settings
VIDEO_CODEC = "libx264"
VIDEO_PRESET = "veryfast"
PIXEL_FORMAT = "yuv420p"
MOVFLAGS = "+faststart"  # Web optimization
AUDIO_CODEC = "aac"
AUDIO_SAMPLE_RATE = 48000
AUDIO_CHANNELS = 2
AUDIO_CHANNEL_LAYOUT = "stereo"

# Engine diagnostics retained on failure
DIAGNOSTIC_TAIL_CHARS = 4000

# Edit parameter bounds
SPEED_MIN = 0.25
SPEED_MAX = 2.0
SPEED_DEFAULT = 1.0
FADE_MIN = 0.0
FADE_MAX = 5.0
MIN_TRIM_WINDOW = 0.01  # Shortest trim window in seconds

# atempo supports this ratio range per filter instance
ATEMPO_STAGE_MIN = 0.5
ATEMPO_STAGE_MAX = 2.0

# Post-processing bounds: (min, max, neutral)
BRIGHTNESS_RANGE = (-1.0, 1.0, 0.0)
CONTRAST_RANGE = (0.0, 2.0, 1.0)
SATURATION_RANGE = (0.0, 3.0, 1.0)

# Scratch workspace file names (engine runs with cwd=workspace)
INPUT_FILENAME = "input{index}.mp4"
NORMALIZED_FILENAME = "clip{index}.mp4"
MANIFEST_FILENAME = "list.txt"
OUTPUT_FILENAME = "output.mp4"
