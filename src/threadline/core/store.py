"""Review store - the single owner of review state

All mutation goes through ``dispatch``. Consumers receive the store by
reference and subscribe to be told about new states.
"""

import logging
from typing import Callable, List, Optional

from threadline.core.reducer import reduce
from threadline.models.state import Action, ReviewState

logger = logging.getLogger(__name__)

Listener = Callable[[ReviewState], None]


class ReviewStore:
    """Holds the current ReviewState and routes actions through the reducer"""

    def __init__(self, state: Optional[ReviewState] = None):
        self._state = state or ReviewState()
        self._listeners: List[Listener] = []
        self._dispatching = False

    @property
    def state(self) -> ReviewState:
        return self._state

    def dispatch(self, action: Action) -> ReviewState:
        """Reduce an action into a new state and notify listeners.

        Raises:
            RuntimeError: If called while the reducer is running
        """
        if self._dispatching:
            raise RuntimeError(f"dispatch of {action.type} during another dispatch")

        self._dispatching = True
        try:
            new_state = reduce(self._state, action)
        finally:
            self._dispatching = False

        if new_state is self._state:
            logger.debug("%s left state unchanged", action.type)
            return new_state

        logger.debug("dispatched %s", action.type)
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
