"""Registration saga state machine.

Created -> Registering -> Confirmed
Created -> Registering -> RegistrationFailed -> Compensated | CompensationFailed

The coordinator drives the transitions; this module only enforces their
order and logs them, so new steps can be added without re-deriving the
rollback rules.
"""

from __future__ import annotations

from enum import StrEnum

import structlog

logger = structlog.get_logger()


class SagaState(StrEnum):
    CREATED = "created"
    REGISTERING = "registering"
    CONFIRMED = "confirmed"
    REGISTRATION_FAILED = "registration_failed"
    COMPENSATED = "compensated"
    COMPENSATION_FAILED = "compensation_failed"


_TRANSITIONS: dict[SagaState, frozenset[SagaState]] = {
    SagaState.CREATED: frozenset({SagaState.REGISTERING}),
    SagaState.REGISTERING: frozenset({SagaState.CONFIRMED, SagaState.REGISTRATION_FAILED}),
    SagaState.REGISTRATION_FAILED: frozenset({SagaState.COMPENSATED, SagaState.COMPENSATION_FAILED}),
    SagaState.CONFIRMED: frozenset(),
    SagaState.COMPENSATED: frozenset(),
    SagaState.COMPENSATION_FAILED: frozenset(),
}


class InvalidSagaTransitionError(Exception):
    def __init__(self, *, current: SagaState, target: SagaState) -> None:
        self.current = current
        self.target = target
        super().__init__(f"invalid saga transition {current} -> {target}")


class RegistrationSaga:
    """Tracks one New-wallet registration from record creation to its outcome."""

    def __init__(self, wallet_address: str) -> None:
        self.wallet_address = wallet_address
        self.state = SagaState.CREATED
        self.history: list[SagaState] = [SagaState.CREATED]
        self.transaction_hash: str | None = None

    def advance(self, target: SagaState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidSagaTransitionError(current=self.state, target=target)
        logger.info(
            "registration saga transition",
            wallet_address=self.wallet_address,
            from_state=self.state,
            to_state=target,
            transaction_hash=self.transaction_hash,
        )
        self.state = target
        self.history.append(target)
