"""MPD parsing into the manifest model."""

from .loader import expand_timeline_entries, load_manifest

__all__ = ["expand_timeline_entries", "load_manifest"]
