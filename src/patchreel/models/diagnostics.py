"""
Diagnostic Codes
================

Fixed set of machine-readable codes for recoverable conditions.

These are reported (logged and counted) but never raised. Each code
names exactly one cause.
"""

from enum import Enum


class DiagnosticCode(str, Enum):
    """
    Recoverable compositing conditions.
    
    Attributes:
        RESTORE_WITHOUT_HISTORY: RESTORE_PREVIOUS disposal with no saved
            canvas; treated as a no-op
        SEEK_SUPERSEDED: A pending seek was replaced by a newer one before
            it started
        DELAY_FLOORED: A zero delay was raised to the playback
            minimum
    """
    
    RESTORE_WITHOUT_HISTORY = "RESTORE_WITHOUT_HISTORY"
    SEEK_SUPERSEDED = "SEEK_SUPERSEDED"
    DELAY_FLOORED = "DELAY_FLOORED"
