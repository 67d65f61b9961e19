"""Abstract boundary to the player-registry contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class ContractCall(BaseModel, frozen=True):
    """A single contract invocation handed to the signing account."""

    contract_address: str
    entrypoint: str
    calldata: list[Any] = Field(default_factory=list)


@runtime_checkable
class SigningAccount(Protocol):
    """The connected wallet's account. Signs and submits invocations.

    Returns the node's submission response, which carries the
    transaction hash under "transaction_hash".
    """

    async def execute(self, calls: list[ContractCall]) -> dict[str, Any]: ...


class SubmittedTransaction(BaseModel, frozen=True):
    """Result of submitting a contract call. The hash may be empty if the account returned none."""

    transaction_hash: str = ""


class RegistrationReceipt(BaseModel, frozen=True):
    """Outcome of waiting for a submitted transaction to settle."""

    transaction_hash: str
    confirmed: bool
    finality_status: str | None = None
    execution_status: str | None = None
    revert_reason: str | None = None


class ContractGateway(ABC):
    """Submit player-registry calls and wait for their finality.

    Submissions are signed by the caller's own account. Implementations
    raise ContractCallFailure for rejected submissions and failed waits.
    """

    @abstractmethod
    async def register(self, account: SigningAccount, wallet_address: str, username: str) -> SubmittedTransaction: ...

    @abstractmethod
    async def update_username(self, account: SigningAccount, new_username: str) -> SubmittedTransaction: ...

    @abstractmethod
    async def wait_for_transaction(self, transaction_hash: str) -> RegistrationReceipt: ...
