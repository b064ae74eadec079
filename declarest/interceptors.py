"""
Interceptors and the interceptor factory.

Interceptors are attached to every assembled request in three tiers: the
configuration's global interceptors, the interface's base interceptors, then the
call's own. The attached list keeps that order and any repeats; the factory only
ensures one shared instance per interceptor class.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from .exceptions import InterceptorTypeError

if TYPE_CHECKING:
    from .http import RequestDescriptor

logger = logging.getLogger(__name__)


class Interceptor:
    """
    Base class for request interceptors.

    Hooks are invoked by the transport in attached order. Instances are shared
    by every request of every endpoint that declares them, so implementations
    must not keep per-request state on `self`.
    """

    def before_execute(self, request: RequestDescriptor) -> bool:
        """Called before the request is sent; returning False vetoes execution."""
        return True

    def on_success(self, data: Any, request: RequestDescriptor, response: Any) -> None:
        pass

    def on_error(self, error: BaseException, request: RequestDescriptor, response: Any) -> None:
        pass

    def after_execute(self, request: RequestDescriptor, response: Any) -> None:
        pass


def _describe(candidate: object) -> str:
    if isinstance(candidate, type):
        return f"{candidate.__module__}.{candidate.__qualname__}"
    return repr(candidate)


class InterceptorFactory:
    """Creates and caches one interceptor instance per class."""

    def __init__(self) -> None:
        self._instances: dict[type[Interceptor], Interceptor] = {}
        self._lock = threading.Lock()

    def get(self, cls: type[Interceptor]) -> Interceptor:
        """
        Return the shared instance of `cls`.

        Raises:
            InterceptorTypeError: If `cls` is not a concrete `Interceptor` subclass.
        """
        if not isinstance(cls, type) or not issubclass(cls, Interceptor) or inspect.isabstract(cls):
            raise InterceptorTypeError(
                f"Class [{_describe(cls)}] is not an implementation of "
                f"[{_describe(Interceptor)}]",
                interceptor=cls,
            )
        with self._lock:
            instance = self._instances.get(cls)
            if instance is None:
                instance = cls()
                self._instances[cls] = instance
                logger.debug(f"Created interceptor instance {_describe(cls)}")
            return instance

    def resolve_all(self, classes: Iterable[type[Interceptor]] | None) -> tuple[Interceptor, ...]:
        """Resolve classes to instances, keeping order and repeats."""
        if not classes:
            return ()
        return tuple(self.get(cls) for cls in classes)


def merge_interceptors(
    global_: Sequence[Interceptor],
    base: Sequence[Interceptor],
    call: Sequence[Interceptor],
) -> tuple[Interceptor, ...]:
    """Concatenate the three tiers: global, then interface base, then call."""
    return (*global_, *base, *call)
