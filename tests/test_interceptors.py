from __future__ import annotations

import abc
from typing import Any

import pytest

from declarest.callbacks import OnSuccess, success_payload_type
from declarest.exceptions import InterceptorTypeError
from declarest.interceptors import Interceptor, InterceptorFactory, merge_interceptors


class First(Interceptor):
    pass


class Second(Interceptor):
    pass


class Abstract(Interceptor, abc.ABC):
    @abc.abstractmethod
    def describe(self) -> str: ...


def test_factory_returns_one_instance_per_class() -> None:
    factory = InterceptorFactory()
    assert factory.get(First) is factory.get(First)
    assert factory.get(First) is not factory.get(Second)


def test_resolve_all_keeps_order_and_repeats() -> None:
    factory = InterceptorFactory()
    resolved = factory.resolve_all([Second, First, Second])
    assert [type(i) for i in resolved] == [Second, First, Second]
    assert resolved[0] is resolved[2]
    assert factory.resolve_all(None) == ()


@pytest.mark.parametrize("candidate", [str, Abstract, First()])
def test_factory_rejects_non_interceptors(candidate: Any) -> None:
    with pytest.raises(InterceptorTypeError) as exc:
        InterceptorFactory().get(candidate)
    assert exc.value.interceptor is candidate
    assert "is not an implementation of [declarest.interceptors.Interceptor]" in str(exc.value)


def test_merge_interceptors_concatenates_tiers() -> None:
    a, b, c = First(), Second(), First()
    assert merge_interceptors([a], [b], [c, a]) == (a, b, c, a)


def test_default_hooks() -> None:
    interceptor = First()
    assert interceptor.before_execute(None) is True  # type: ignore[arg-type]


def test_success_payload_type_for_unbound_generic() -> None:
    assert success_payload_type(OnSuccess) is Any
    assert success_payload_type(OnSuccess[int]) is int
