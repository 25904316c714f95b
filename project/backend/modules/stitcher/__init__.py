"""
Stitcher module.

Joins an ordered list of remote video clips, each with its own trim, speed
and fade directives, into one normalized MP4.

Entry points live in modules.stitcher.process (process) and
modules.stitcher.local (stitch_to_file).
"""

from modules.stitcher.local import stitch_to_file

__all__ = ["stitch_to_file"]
