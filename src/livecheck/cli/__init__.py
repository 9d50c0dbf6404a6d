"""Command line interface for livecheck."""
