#!/usr/bin/env python3
"""
CLI entry point for livecheck.cli module.

This allows running: python -m livecheck.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
