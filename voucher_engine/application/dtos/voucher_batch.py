"""Batch operation DTOs.

Bulk administrative actions (issue, recall, delete many vouchers at once)
arrive as pydantic request models, validated at the boundary, and return a
BatchOperationResult that reports each item separately. One failing item
never aborts the rest of the batch.

This module contains two types of definitions:
1. Pydantic models - validated requests crossing into the application layer
2. Dataclass-based results - produced by the lifecycle service
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from voucher_engine.config.voucher_config import MAX_BATCH_SIZE_LIMIT
from voucher_engine.domain.events.voucher_audit import SYSTEM_ACTOR_ID


class RecallMethod(str, Enum):
    """How the vouchers in a recall batch were collected."""

    MANUAL = "manual"
    BARCODE = "barcode"
    QRCODE = "qrcode"


class BatchIssueRequest(BaseModel):
    """Issue (or re-issue) many vouchers.

    Attributes:
        voucher_ids: Vouchers to issue.
        actor_id: Administrator performing the action.
    """

    model_config = ConfigDict(frozen=True)

    voucher_ids: list[UUID] = Field(
        min_length=1,
        max_length=MAX_BATCH_SIZE_LIMIT,
        description="Vouchers to issue",
    )
    actor_id: str = Field(default=SYSTEM_ACTOR_ID, min_length=1)


class BatchRecallRequest(BaseModel):
    """Recall many issued vouchers.

    Attributes:
        references: Voucher ids or serial numbers.
        reason: Recall reason recorded on each voucher.
        actor_id: Administrator performing the recall.
        method: How the vouchers were collected.
    """

    model_config = ConfigDict(frozen=True)

    references: list[str] = Field(
        min_length=1,
        max_length=MAX_BATCH_SIZE_LIMIT,
        description="Voucher ids or serial numbers",
    )
    reason: str | None = Field(default=None, max_length=500)
    actor_id: str = Field(default=SYSTEM_ACTOR_ID, min_length=1)
    method: RecallMethod = RecallMethod.MANUAL

    @field_validator("references")
    @classmethod
    def strip_references(cls, v: list[str]) -> list[str]:
        """Strip whitespace and reject blank references."""
        stripped = [ref.strip() for ref in v]
        if any(not ref for ref in stripped):
            raise ValueError("references must not contain blank entries")
        return stripped


class BatchDeleteRequest(BaseModel):
    """Delete many vouchers that have not reached a terminal status."""

    model_config = ConfigDict(frozen=True)

    voucher_ids: list[UUID] = Field(
        min_length=1,
        max_length=MAX_BATCH_SIZE_LIMIT,
        description="Vouchers to delete",
    )
    actor_id: str = Field(default=SYSTEM_ACTOR_ID, min_length=1)


@dataclass(frozen=True)
class BatchItemOutcome:
    """Result of one item in a batch.

    Attributes:
        reference: The id or serial as given in the request.
        succeeded: True if the operation was applied.
        error_code: Stable error code when it was not.
        message: Human-readable failure description.
    """

    reference: str
    succeeded: bool
    error_code: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class BatchOperationResult:
    """Per-item results of a batch operation.

    Attributes:
        operation: The lifecycle operation applied ("issue", "recall", ...).
        outcomes: One outcome per requested item, in request order.
    """

    operation: str
    outcomes: list[BatchItemOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[str]:
        """References that were processed successfully."""
        return [o.reference for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[BatchItemOutcome]:
        """Outcomes of items that were rejected."""
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)
