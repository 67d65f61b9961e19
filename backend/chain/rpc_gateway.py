"""Contract gateway over a StarkNet JSON-RPC node.

Submissions go through the session's signing account (the wallet signs and
broadcasts). Confirmation is observed independently by polling the node for
the transaction receipt until it reaches a terminal status.
"""

from __future__ import annotations

import asyncio
from itertools import count
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from chain.gateway import ContractCall, ContractGateway, RegistrationReceipt, SubmittedTransaction
from identity.errors import ContractCallFailure, ContractFailureReason, ContractOperation

if TYPE_CHECKING:
    from chain.gateway import SigningAccount

logger = structlog.get_logger()

REGISTER_ENTRYPOINT = "player_registers"
UPDATE_USERNAME_ENTRYPOINT = "player_update_username"

# JSON-RPC error code the node returns while it has not seen the transaction yet.
TXN_HASH_NOT_FOUND = 29

_ACCEPTED = {"ACCEPTED_ON_L2", "ACCEPTED_ON_L1"}
_SUCCEEDED = "SUCCEEDED"
_REVERTED = "REVERTED"
_REJECTED = "REJECTED"


class RpcContractGateway(ContractGateway):
    """ContractGateway backed by the chain node's JSON-RPC API.

    The caller owns the httpx.AsyncClient. wait_for_transaction polls until
    the receipt is accepted, reverted, or rejected. Transport errors and 5xx
    answers from the node are logged and polled again; client errors, bodies
    that are not JSON-RPC, and RPC errors other than "hash not found" fail
    confirmation. It never gives up on its own, so callers bound it with a
    timeout when they need one.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        rpc_url: str,
        contract_address: str,
        *,
        poll_interval_seconds: float = 5.0,
    ) -> None:
        self._client = client
        self._rpc_url = rpc_url
        self._contract_address = contract_address
        self._poll_interval = poll_interval_seconds
        self._request_ids = count(1)

    async def register(self, account: SigningAccount, wallet_address: str, username: str) -> SubmittedTransaction:
        call = ContractCall(
            contract_address=self._contract_address,
            entrypoint=REGISTER_ENTRYPOINT,
            calldata=[wallet_address, username],
        )
        return await self._submit(account, call, ContractOperation.REGISTER)

    async def update_username(self, account: SigningAccount, new_username: str) -> SubmittedTransaction:
        call = ContractCall(
            contract_address=self._contract_address,
            entrypoint=UPDATE_USERNAME_ENTRYPOINT,
            calldata=[new_username],
        )
        return await self._submit(account, call, ContractOperation.UPDATE_USERNAME)

    async def wait_for_transaction(self, transaction_hash: str) -> RegistrationReceipt:
        while True:
            result = await self._get_receipt(transaction_hash)
            if result is not None:
                receipt = _parse_receipt(transaction_hash, result)
                if receipt is not None:
                    logger.info(
                        "transaction settled",
                        transaction_hash=transaction_hash,
                        confirmed=receipt.confirmed,
                        finality_status=receipt.finality_status,
                    )
                    return receipt
            await asyncio.sleep(self._poll_interval)

    async def _submit(
        self,
        account: SigningAccount,
        call: ContractCall,
        operation: ContractOperation,
    ) -> SubmittedTransaction:
        try:
            response = await account.execute([call])
        except Exception as exc:
            raise ContractCallFailure(
                reason=ContractFailureReason.SUBMISSION_REJECTED,
                operation=operation,
                detail=str(exc),
            ) from exc
        transaction_hash = (response or {}).get("transaction_hash") or ""
        logger.info("contract call submitted", entrypoint=call.entrypoint, transaction_hash=transaction_hash)
        return SubmittedTransaction(transaction_hash=str(transaction_hash))

    async def _get_receipt(self, transaction_hash: str) -> dict[str, Any] | None:
        """Fetch the receipt, or None while the node does not know the transaction yet or is briefly unreachable."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": "starknet_getTransactionReceipt",
            "params": {"transaction_hash": transaction_hash},
        }
        try:
            response = await self._client.post(self._rpc_url, json=payload)
        except httpx.RequestError as exc:
            logger.warning("receipt lookup failed, retrying", transaction_hash=transaction_hash, error=str(exc))
            return None
        if response.is_server_error:
            logger.warning(
                "receipt lookup failed, retrying",
                transaction_hash=transaction_hash,
                status_code=response.status_code,
            )
            return None

        try:
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPStatusError, ValueError) as exc:
            raise ContractCallFailure(
                reason=ContractFailureReason.CONFIRMATION_FAILED,
                detail=f"receipt lookup failed: {exc}",
                transaction_hash=transaction_hash,
            ) from exc
        if not isinstance(body, dict):
            raise ContractCallFailure(
                reason=ContractFailureReason.CONFIRMATION_FAILED,
                detail=f"receipt lookup failed: unexpected body {body!r}",
                transaction_hash=transaction_hash,
            )

        error = body.get("error")
        if error is not None:
            if error.get("code") == TXN_HASH_NOT_FOUND:
                return None
            raise ContractCallFailure(
                reason=ContractFailureReason.CONFIRMATION_FAILED,
                detail=error.get("message", "unknown RPC error"),
                transaction_hash=transaction_hash,
            )
        return body.get("result")


def _parse_receipt(transaction_hash: str, result: dict[str, Any]) -> RegistrationReceipt | None:
    """Map a raw receipt to a terminal RegistrationReceipt, or None if still pending."""
    finality_status = result.get("finality_status")
    execution_status = result.get("execution_status")
    revert_reason = result.get("revert_reason")

    if execution_status == _REVERTED or finality_status == _REJECTED:
        return RegistrationReceipt(
            transaction_hash=transaction_hash,
            confirmed=False,
            finality_status=finality_status,
            execution_status=execution_status,
            revert_reason=revert_reason,
        )
    if finality_status in _ACCEPTED and execution_status == _SUCCEEDED:
        return RegistrationReceipt(
            transaction_hash=transaction_hash,
            confirmed=True,
            finality_status=finality_status,
            execution_status=execution_status,
        )
    return None
