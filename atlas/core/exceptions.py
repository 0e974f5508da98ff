"""
Application exceptions.

Only document parsing can fail hard; every other core operation is
permissive (unknown identities are no-ops, missing attributes are "not found").
"""
from __future__ import annotations


class AtlasError(Exception):
    """Base class for all application errors."""


class DocumentParseError(AtlasError):
    """The raw document cannot be normalized at all.

    Distinct from a document that parsed fine but holds no pops.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Cannot normalize document: {reason}")
