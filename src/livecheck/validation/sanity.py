"""Structural preconditions for timeline analysis.

Pure model validation. No feedback, no side effects.
"""

from __future__ import annotations

from livecheck.domain.manifest import Manifest
from livecheck.infra.exceptions import UnsupportedFeature


def run_sanity_checks(manifest: Manifest) -> None:
    """Raise UnsupportedFeature if the manifest is structurally empty anywhere."""
    if not manifest.periods:
        raise UnsupportedFeature("There are 0 periods in the manifest.")

    if any(not p.adaptation_sets for p in manifest.periods):
        raise UnsupportedFeature("There is a period with 0 adaptation sets in the manifest.")

    if any(not s.representations for p in manifest.periods for s in p.adaptation_sets):
        raise UnsupportedFeature("There is an adaptation set with 0 representations in the manifest.")
