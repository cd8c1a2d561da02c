"""Application-layer DTOs."""

from voucher_engine.application.dtos.voucher_batch import (
    BatchDeleteRequest,
    BatchIssueRequest,
    BatchItemOutcome,
    BatchOperationResult,
    BatchRecallRequest,
    RecallMethod,
)

__all__: list[str] = [
    "BatchDeleteRequest",
    "BatchIssueRequest",
    "BatchItemOutcome",
    "BatchOperationResult",
    "BatchRecallRequest",
    "RecallMethod",
]
