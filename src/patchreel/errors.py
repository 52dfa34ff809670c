"""
Error Types
===========

Exception hierarchy for patchreel.

Taxonomy:
    - DecodeFailure: asset rejected at load (no frames, malformed descriptor)
    - GeometryViolation: rectangle, crop or trim range outside its bounds
    - ResourceExhaustion: a canvas buffer could not be allocated

A RESTORE_PREVIOUS disposal with no saved buffer is NOT an exception.
It is recovered locally as a no-op and reported through
patchreel.models.diagnostics.DiagnosticCode.
"""


class PatchreelError(Exception):
    """Base class for all patchreel errors."""
    pass


class DecodeFailure(PatchreelError):
    """Raised when an asset cannot be turned into frame descriptors."""
    pass


class GeometryViolation(PatchreelError, ValueError):
    """Raised when a rectangle, crop or trim range breaks its invariants."""
    pass


class ResourceExhaustion(PatchreelError):
    """Raised when a canvas-sized buffer cannot be allocated."""
    pass
