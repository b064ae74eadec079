"""
Success and error callback types.

An endpoint parameter annotated with `OnSuccess[...]` or `OnError` becomes the
request's success or error callback slot; the transport invokes it once the
request completes.
"""

from __future__ import annotations

import types
import typing
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .http import RequestDescriptor

T = TypeVar("T")


class OnSuccess(ABC, Generic[T]):
    @abstractmethod
    def on_success(self, data: T, request: RequestDescriptor, response: Any) -> None: ...


class OnError(ABC):
    @abstractmethod
    def on_error(self, error: BaseException, request: RequestDescriptor, response: Any) -> None: ...


def _unwrap_optional(annotation: Any) -> Any:
    """`X | None` and `Optional[X]` give `X`; other annotations are returned as is."""
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _origin(annotation: Any) -> Any:
    return typing.get_origin(annotation) or annotation


def is_callback_type(annotation: Any, base: type) -> bool:
    origin = _origin(_unwrap_optional(annotation))
    return isinstance(origin, type) and issubclass(origin, base)


def success_payload_type(annotation: Any) -> Any:
    """
    Return the first generic argument of a success-callback annotation.

    `OnSuccess[User]` gives `User`; an unparameterized annotation gives `Any`.
    Subclasses that bind the parameter (`class UserCallback(OnSuccess[User])`)
    are inspected through their original bases.
    """
    annotation = _unwrap_optional(annotation)
    args = typing.get_args(annotation)
    if args:
        return Any if isinstance(args[0], TypeVar) else args[0]
    origin = _origin(annotation)
    if isinstance(origin, type):
        for klass in origin.__mro__:
            for base in getattr(klass, "__orig_bases__", ()):
                if typing.get_origin(base) is OnSuccess:
                    base_args = typing.get_args(base)
                    if base_args and not isinstance(base_args[0], TypeVar):
                        return base_args[0]
    return Any
