"""Kernel services -- document numbering."""

from settlement_kernel.services.sequence_service import (
    DocumentNumberService,
    SequenceCounter,
    SequenceService,
)

__all__ = ["DocumentNumberService", "SequenceCounter", "SequenceService"]
