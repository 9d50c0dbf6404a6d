"""
Live DASH manifest timeline validation.

Checks that a dynamic MPD presents a gapless segment timeline across the
playback window, as observed at a clock-synchronized "now".
"""

__version__ = "0.1.0"
