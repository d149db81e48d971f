"""Messaging channel lifecycle as an explicit state value.

The channel adapter is the only writer. The pipeline and the reconciler read
the state and branch on it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List

LOGGER = logging.getLogger(__name__)


class ChannelState(str, Enum):
    UNINITIALIZED = "uninitialized"
    AWAITING_AUTHENTICATION = "awaiting_authentication"
    READY = "ready"
    DISCONNECTED = "disconnected"


_ALLOWED = {
    ChannelState.UNINITIALIZED: {ChannelState.AWAITING_AUTHENTICATION, ChannelState.READY},
    ChannelState.AWAITING_AUTHENTICATION: {ChannelState.READY, ChannelState.DISCONNECTED},
    ChannelState.READY: {ChannelState.DISCONNECTED},
    ChannelState.DISCONNECTED: {ChannelState.AWAITING_AUTHENTICATION, ChannelState.READY},
}

StateListener = Callable[[ChannelState, ChannelState], None]


class ChannelLifecycle:
    """Holds the current channel state and notifies listeners on change."""

    def __init__(self, state: ChannelState = ChannelState.UNINITIALIZED) -> None:
        self._state = state
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ChannelState.READY

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def transition(self, new_state: ChannelState) -> None:
        """Move to ``new_state``; repeated writes of the same state are ignored."""

        old_state = self._state
        if new_state is old_state:
            return
        if new_state not in _ALLOWED[old_state]:
            raise ValueError(f"Illegal channel transition {old_state.value} -> {new_state.value}")

        self._state = new_state
        LOGGER.info("Channel state %s -> %s", old_state.value, new_state.value)
        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception:
                LOGGER.exception("Channel state listener failed")
