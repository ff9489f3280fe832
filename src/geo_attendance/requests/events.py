from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Union

from .model import ApprovalDecision

logger = logging.getLogger(__name__)

DecisionHandler = Callable[[ApprovalDecision], Union[None, Awaitable[Any]]]


class ApprovalEvents:
    """In-process publish/subscribe channel for approval decisions, keyed by user."""

    def __init__(self):
        self._handlers: Dict[int, List[DecisionHandler]] = {}

    def subscribe(self, user_id: int, handler: DecisionHandler) -> Callable[[], None]:
        self._handlers.setdefault(int(user_id), []).append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(user_id, handler)

        return unsubscribe

    def unsubscribe(self, user_id: int, handler: DecisionHandler) -> None:
        handlers = self._handlers.get(int(user_id))
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[int(user_id)]

    def subscriber_count(self, user_id: int) -> int:
        return len(self._handlers.get(int(user_id), ()))

    async def publish(self, decision: ApprovalDecision) -> int:
        """Deliver to every handler of the decision's user; returns how many ran."""
        handlers = list(self._handlers.get(decision.user_id, ()))
        if not handlers:
            logger.info("No subscriber for decision on request %s (user %s)", decision.request_id, decision.user_id)
        for handler in handlers:
            result = handler(decision)
            if inspect.isawaitable(result):
                await result
        return len(handlers)
