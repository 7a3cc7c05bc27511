"""Uniform ``{data, error}`` result objects for service and action calls."""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from famledger.domain.errors import DomainError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ActionResult(Generic[T]):
    """Outcome of an action: either ``data`` or an ``error`` message."""

    data: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "ActionResult[T]":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: str) -> "ActionResult[T]":
        return cls(data=None, error=error)

    def unwrap(self) -> T:
        """Return data or raise the carried error as a DomainError."""
        if self.error is not None:
            raise DomainError(self.error)
        return self.data  # type: ignore[return-value]


def run_action(fn: Callable[[], T], fallback: str) -> ActionResult[T]:
    """Run ``fn`` and fold domain errors into an ActionResult.

    Only DomainError (and subclasses) become error results. Anything else is
    a programming or infrastructure failure and propagates to the caller.

    Args:
        fn: Zero-argument callable performing the work
        fallback: Message used when the raised error carries no text
    """
    try:
        return ActionResult.success(fn())
    except DomainError as e:
        message = str(e) or fallback
        logger.info("Action failed: %s", message)
        return ActionResult.failure(message)
