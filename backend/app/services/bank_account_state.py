from __future__ import annotations

from enum import Enum


class BankAccountState(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


VERIFY = "verify"

TRANSITIONS: dict[tuple[BankAccountState, str], BankAccountState] = {
    (BankAccountState.UNVERIFIED, VERIFY): BankAccountState.VERIFIED,
}


class InvalidStateTransition(Exception):
    def __init__(self, state: BankAccountState | str, event: str):
        super().__init__(f"cannot {event} a bank account in state {str(getattr(state, 'value', state))!r}")
        self.state = state
        self.event = event


def transition(state: BankAccountState | str, event: str) -> BankAccountState:
    # verification is one-way; there is no event leading back to unverified
    try:
        current = BankAccountState(state)
    except ValueError:
        raise InvalidStateTransition(state, event)
    nxt = TRANSITIONS.get((current, event))
    if nxt is None:
        raise InvalidStateTransition(current, event)
    return nxt
