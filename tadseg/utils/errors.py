"""Exceptions raised by the segmentation pipeline."""

from typing import Optional


class SegmentationError(Exception):
    """Base class for pipeline errors."""
    pass


class InvalidInputError(SegmentationError, ValueError):
    """
    The input image violates an entry invariant.

    Raised before any stage runs, so no partial label map is ever produced.

    Attributes:
        stage: Pipeline stage that rejected the input (e.g. 'input')
        invariant: Short description of the violated invariant
    """

    def __init__(self, message: str, stage: str = "input", invariant: Optional[str] = None):
        self.stage = stage
        self.invariant = invariant
        detail = f"[{stage}] {message}"
        if invariant:
            detail += f" (expected: {invariant})"
        super().__init__(detail)
