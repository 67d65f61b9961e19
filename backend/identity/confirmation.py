"""Shared submit-then-confirm step used by both coordinators."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from identity.errors import ContractCallFailure, ContractFailureReason

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chain.gateway import ContractGateway, RegistrationReceipt, SubmittedTransaction
    from identity.errors import ContractOperation


async def submit_and_confirm(
    gateway: ContractGateway,
    submit: Callable[[], Awaitable[SubmittedTransaction]],
    *,
    operation: ContractOperation,
    timeout_seconds: float | None,
) -> RegistrationReceipt:
    """Submit a contract call, wait for it to settle, and require that it succeeded.

    Every failure surfaces as ContractCallFailure tagged with `operation`:
    a raising submission, an empty transaction hash, a timed-out wait, a
    failing wait, and a receipt that did not confirm. A None timeout waits
    indefinitely.
    """
    try:
        submitted = await submit()
    except ContractCallFailure as exc:
        raise _retag(exc, operation) from exc
    except Exception as exc:
        raise ContractCallFailure(
            reason=ContractFailureReason.SUBMISSION_REJECTED,
            operation=operation,
            detail=str(exc),
        ) from exc

    transaction_hash = submitted.transaction_hash
    if not transaction_hash:
        raise ContractCallFailure(
            reason=ContractFailureReason.MISSING_HANDLE,
            operation=operation,
            detail="No transaction hash returned from contract call",
        )

    try:
        async with asyncio.timeout(timeout_seconds):
            receipt = await gateway.wait_for_transaction(transaction_hash)
    except TimeoutError as exc:
        raise ContractCallFailure(
            reason=ContractFailureReason.CONFIRMATION_TIMEOUT,
            operation=operation,
            detail=f"not confirmed within {timeout_seconds}s",
            transaction_hash=transaction_hash,
        ) from exc
    except ContractCallFailure as exc:
        raise _retag(exc, operation, transaction_hash) from exc
    except Exception as exc:
        raise ContractCallFailure(
            reason=ContractFailureReason.CONFIRMATION_FAILED,
            operation=operation,
            detail=str(exc),
            transaction_hash=transaction_hash,
        ) from exc

    if not receipt.confirmed:
        raise ContractCallFailure(
            reason=ContractFailureReason.CONFIRMATION_FAILED,
            operation=operation,
            detail=receipt.revert_reason or f"transaction {receipt.execution_status or receipt.finality_status}",
            transaction_hash=transaction_hash,
        )
    return receipt


def _retag(
    exc: ContractCallFailure,
    operation: ContractOperation,
    transaction_hash: str | None = None,
) -> ContractCallFailure:
    return ContractCallFailure(
        reason=exc.reason,
        operation=operation,
        detail=exc.detail,
        transaction_hash=exc.transaction_hash or transaction_hash,
    )
