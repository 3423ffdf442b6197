import asyncio
import time
from enum import Enum
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import BaseModel

from vaultbot.config import CONVERSATION_TIMEOUT


class PendingFlow(str, Enum):
    """Which single-slot input the user's next free-text message answers."""
    NONE = "none"
    AWAITING_MINT_AMOUNT = "awaiting_mint_amount"
    AWAITING_CONVERSION_AMOUNT = "awaiting_conversion_amount"
    AWAITING_WITHDRAWAL_AMOUNT = "awaiting_withdrawal_amount"
    AWAITING_WITHDRAWAL_ADDRESS = "awaiting_withdrawal_address"
    AWAITING_SEED_PHRASE = "awaiting_seed_phrase"
    AWAITING_RESET_CONFIRMATION = "awaiting_reset_confirmation"


# Flows a user can start directly; the withdrawal address step is only
# reachable from the withdrawal amount step.
ENTRY_FLOWS = frozenset({
    PendingFlow.AWAITING_MINT_AMOUNT,
    PendingFlow.AWAITING_CONVERSION_AMOUNT,
    PendingFlow.AWAITING_WITHDRAWAL_AMOUNT,
    PendingFlow.AWAITING_SEED_PHRASE,
    PendingFlow.AWAITING_RESET_CONFIRMATION,
})

ADVANCE_TRANSITIONS = {
    PendingFlow.AWAITING_WITHDRAWAL_AMOUNT: PendingFlow.AWAITING_WITHDRAWAL_ADDRESS,
}


class InvalidTransition(Exception):
    """Raised when a flow step is requested from the wrong state."""
    pass


class PendingState(BaseModel):
    flow: PendingFlow = PendingFlow.NONE
    withdrawal_amount: Optional[float] = None


class SessionManager:
    """
    Per-user conversation state.

    Each user has one pending-flow slot, not a stack: starting a flow replaces
    whatever was pending. Slots expire after CONVERSATION_TIMEOUT seconds
    without activity. A per-user lock serializes flow operations.
    """

    def __init__(self, timeout: float = CONVERSATION_TIMEOUT):
        """Initialize the session manager with an empty sessions dictionary."""
        # Structure: {user_id: {'last_updated': timestamp, 'state': PendingState}}
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.timeout = timeout

    def get_state(self, user_id: str) -> PendingState:
        """
        Get the pending state for a user.

        Args:
            user_id: Opaque user identifier

        Returns:
            The pending state, NONE if no session exists or it expired
        """
        session = self._sessions.get(user_id)

        if not session:
            return PendingState()

        if self._is_session_expired(session):
            logger.info(f"Session expired for user {user_id}. Cleaning up.")
            self.clear_session(user_id)
            return PendingState()

        session['last_updated'] = time.time()
        return session['state']

    def get_flow(self, user_id: str) -> PendingFlow:
        return self.get_state(user_id).flow

    def _set_state(self, user_id: str, state: PendingState) -> None:
        self._sessions[user_id] = {
            'last_updated': time.time(),
            'state': state
        }
        logger.debug(
            f"Session state updated for user {user_id}",
            extra={"user_id": user_id, "flow": state.flow.value}
        )

    def start(self, user_id: str, flow: PendingFlow) -> PendingState:
        """
        Start a flow, superseding any flow that was pending.

        Raises:
            InvalidTransition: If the flow cannot be entered directly
        """
        if flow not in ENTRY_FLOWS:
            raise InvalidTransition(f"Cannot start {flow.value} directly")

        previous = self.get_flow(user_id)
        if previous is not PendingFlow.NONE:
            logger.info(
                f"User {user_id} started {flow.value}, superseding {previous.value}",
                extra={"user_id": user_id}
            )

        state = PendingState(flow=flow)
        self._set_state(user_id, state)
        return state

    def advance(self, user_id: str, flow: PendingFlow, withdrawal_amount: Optional[float] = None) -> PendingState:
        """
        Move to the next step of a multi-step flow.

        Raises:
            InvalidTransition: If the current state does not lead to `flow`
        """
        current = self.get_flow(user_id)
        if ADVANCE_TRANSITIONS.get(current) is not flow:
            raise InvalidTransition(f"Cannot move from {current.value} to {flow.value}")

        state = PendingState(flow=flow, withdrawal_amount=withdrawal_amount)
        self._set_state(user_id, state)
        return state

    def finish(self, user_id: str) -> None:
        """Return the user to NONE after a terminal result or a cancellation."""
        self.clear_session(user_id)

    def clear_session(self, user_id: str):
        """
        Clear the session for a user.

        Args:
            user_id: Opaque user identifier
        """
        if user_id in self._sessions:
            del self._sessions[user_id]
            logger.debug(f"Session cleared for user {user_id}")

    def lock_for(self, user_id: str) -> asyncio.Lock:
        """Lock serializing flow operations of one user."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def _is_session_expired(self, session: Dict[str, Any]) -> bool:
        last_updated = session.get('last_updated', 0)
        return (time.time() - last_updated) > self.timeout

    def cleanup_expired_sessions(self):
        """
        Remove all expired sessions.

        This method should be called periodically to clean up stale sessions.
        """
        expired_users = [
            user_id for user_id, session in self._sessions.items()
            if self._is_session_expired(session)
        ]

        for user_id in expired_users:
            self.clear_session(user_id)

        if expired_users:
            logger.info(f"Cleaned up {len(expired_users)} expired sessions")
