"""User-facing phase labels and status vocabulary translation."""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from import_tracker.models.batch_job import BatchJobStatus
from import_tracker.schemas.import_job import ImportStatus

StatusVocabulary = Mapping[str, str]

NATIVE_VOCABULARY: StatusVocabulary = MappingProxyType({status.value: status.value for status in ImportStatus})

BATCH_JOB_VOCABULARY: StatusVocabulary = MappingProxyType(
    {
        BatchJobStatus.CREATED: ImportStatus.PENDING.value,
        BatchJobStatus.PRE_PROCESSED: ImportStatus.PROCESSING.value,
        BatchJobStatus.CONFIRMED: ImportStatus.PROCESSING.value,
        BatchJobStatus.PROCESSING: ImportStatus.PROCESSING.value,
        BatchJobStatus.COMPLETED: ImportStatus.COMPLETED.value,
        BatchJobStatus.CANCELED: ImportStatus.CANCELED.value,
        BatchJobStatus.FAILED: ImportStatus.FAILED.value,
    }
)

# Lower bounds (inclusive) of each processing band, highest first.
_PROCESSING_BANDS = (
    (90, "finalizing"),
    (50, "importing"),
    (10, "validating"),
    (1, "parsing"),
)

_FIXED_PHASES = {
    ImportStatus.PENDING.value: "queued",
    ImportStatus.COMPLETED.value: "completed",
    ImportStatus.FAILED.value: "failed",
    ImportStatus.CANCELED.value: "canceled",
}


def translate_status(raw_status: str, vocabulary: StatusVocabulary) -> str:
    """Map a source system's status onto the native vocabulary.

    Values the vocabulary does not know are returned unchanged.
    """
    return vocabulary.get(raw_status, raw_status)


def derive_phase(status: str, percent: int) -> str:
    """Return the phase label for a native status and whole-number percentage."""
    if status == ImportStatus.PROCESSING.value:
        for lower_bound, phase in _PROCESSING_BANDS:
            if percent >= lower_bound:
                return phase
        return "initializing"
    return _FIXED_PHASES.get(status, "unknown")
