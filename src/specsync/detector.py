"""Version-change detection.

Comparison is purely syntactic: two markers are the same version exactly
when they are the same string. Deciding whether a change is breaking or
cosmetic is left to whoever consumes the scan report.
"""

from __future__ import annotations

from specsync.models import ChangeKind


def classify(stored: str, resolved: str) -> ChangeKind:
    """Classify a freshly resolved marker against the stored one.

    Args:
        stored: The catalogue's ``lastKnownVersion`` (``""`` if never recorded).
        resolved: The marker just resolved upstream.

    Returns:
        :attr:`ChangeKind.NEW` when nothing was stored,
        :attr:`ChangeKind.UNCHANGED` when the markers are identical, and
        :attr:`ChangeKind.UPDATED` otherwise.
    """
    if not stored:
        return ChangeKind.NEW
    if stored == resolved:
        return ChangeKind.UNCHANGED
    return ChangeKind.UPDATED
