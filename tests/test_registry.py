from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

import pytest

from declarest.callbacks import OnError, OnSuccess
from declarest.config import Configuration
from declarest.exceptions import (
    ConfigurationError,
    InterceptorTypeError,
    UnknownCredentialError,
    UnknownFilterError,
)
from declarest.interceptors import Interceptor
from declarest.models import DataObject, DataParam, DataVariable, ParameterInfo, RequestSpec
from declarest.registry import (
    INTERFACE_ATTR,
    EndpointRegistry,
    describe_function,
    interface,
    request,
)

if TYPE_CHECKING:
    from decimal import Decimal


class Audit(Interceptor):
    pass


class NotAnInterceptor:
    pass


class Account:
    pass


class AccountCallback(OnSuccess[Account]):
    def on_success(self, data: Account, request: Any, response: Any) -> None:
        pass


class ErrorCallback(OnError):
    def on_error(self, error: BaseException, request: Any, response: Any) -> None:
        pass


@interface(
    base_url="https://api.example.com/${api_version}",
    headers=["Accept: application/json"],
    interceptors=(Audit,),
    timeout=2000,
)
class Accounts:
    @request(url="/accounts/${id}", data_type="json")
    def get(self, id: Annotated[int, DataVariable()]) -> None: ...

    @request(url="/accounts", type="post", data="name=${name}")
    def create(
        self,
        name: Annotated[str, DataVariable(filter="trim")],
        done: AccountCallback,
        failed: ErrorCallback,
    ) -> None: ...

    @staticmethod
    @request(url="/accounts/search")
    def search(q: Annotated[str, DataParam("q")], extra: Annotated[dict, DataObject()]) -> None: ...

    def helper(self) -> None: ...


def test_describe_function_reads_annotated_markers() -> None:
    infos = describe_function(Accounts.create, skip_self=True)
    assert [(i.index, i.name) for i in infos] == [(0, "name"), (1, "done"), (2, "failed")]
    assert infos[0].annotation is str
    assert infos[0].markers == (DataVariable(filter="trim"),)
    assert infos[1].annotation is AccountCallback
    assert infos[1].markers == ()


def test_describe_function_rejects_variadics() -> None:
    def bad(*args: Any) -> None: ...

    with pytest.raises(ConfigurationError, match="variadic"):
        describe_function(bad)


def test_register_interface_uses_class_settings() -> None:
    registry = EndpointRegistry(Configuration(variables={"api_version": "v2"}))
    ids = registry.register_interface(Accounts)
    assert ids == ["Accounts.get", "Accounts.create", "Accounts.search"]
    assert len(registry) == 3
    assert "Accounts.get" in registry
    assert getattr(Accounts, INTERFACE_ATTR).timeout == 2000

    request_ = registry.assemble("Accounts.get", [42])
    assert request_.full_url == "https://api.example.com/v2/accounts/42"
    assert request_.headers == (("Accept", "application/json"),)
    assert request_.timeout == 2000
    assert [type(i) for i in request_.interceptors] == [Audit]


def test_registered_callbacks_are_bound_per_call() -> None:
    registry = EndpointRegistry(Configuration(variables={"api_version": "v1"}))
    registry.register_interface(Accounts, prefix="acct")
    done, failed = AccountCallback(), ErrorCallback()
    request_ = registry.assemble("acct.create", ["  Ada ", done, failed])
    assert request_.type == "POST"
    assert request_.body == "name=Ada"
    assert request_.on_success is done
    assert request_.on_error is failed
    assert request_.success_type is Account
    assert registry.get("acct.create").success_type is Account


def test_static_methods_keep_their_first_parameter() -> None:
    registry = EndpointRegistry(Configuration(variables={"api_version": "v1"}))
    registry.register_interface(Accounts)
    request_ = registry.assemble("Accounts.search", ["abc", {"page": 2}])
    assert [(nv.name, nv.value) for nv in request_.data] == [("q", "abc"), ("page", 2)]


def test_register_function() -> None:
    @request(url="http://h/ping/${0}")
    def ping(target: str) -> None: ...

    registry = EndpointRegistry()
    descriptor = registry.register_function(ping, endpoint_id="ping")
    assert descriptor.arity == 1
    assert registry.assemble("ping", ["db"]).path == "/ping/db"


def test_undecorated_function_is_rejected() -> None:
    def plain() -> None: ...

    with pytest.raises(ConfigurationError, match="not decorated"):
        EndpointRegistry().register_function(plain)


def test_duplicate_endpoint_id_is_rejected() -> None:
    registry = EndpointRegistry()
    registry.register("x", RequestSpec(url="http://h/x"))
    with pytest.raises(ConfigurationError, match="already registered"):
        registry.register("x", RequestSpec(url="http://h/y"))


def test_unknown_endpoint_lookup() -> None:
    with pytest.raises(KeyError, match="Unknown endpoint"):
        EndpointRegistry().get("missing")


def test_registration_errors() -> None:
    registry = EndpointRegistry()
    with pytest.raises(ConfigurationError, match="declares no URL"):
        registry.register("a", RequestSpec(url=" "))
    with pytest.raises(ConfigurationError, match="declares no request type"):
        registry.register("b", RequestSpec(url="http://h", type=""))
    with pytest.raises(ConfigurationError, match="invalid URL template"):
        registry.register("c", RequestSpec(url="http://h/${oops"))
    with pytest.raises(UnknownFilterError):
        registry.register(
            "d",
            RequestSpec(url="http://h"),
            [ParameterInfo(0, "a", str, (DataParam("a", "nope"),))],
        )
    with pytest.raises(UnknownCredentialError):
        registry.register("e", RequestSpec(url="http://h", key_store="vault"))
    assert len(registry) == 0


def test_non_interceptor_class_is_rejected() -> None:
    registry = EndpointRegistry()
    with pytest.raises(InterceptorTypeError, match="is not an implementation of"):
        registry.register("x", RequestSpec(url="http://h", interceptors=(NotAnInterceptor,)))


def test_invalid_request_options_fail_at_decoration_time() -> None:
    with pytest.raises(ValueError):
        request(url="/x", unknown_option=True)


@request(url="http://h/search")
def search_with_deferred_hint(q: Annotated[str, DataParam("q")], rate: Decimal | None) -> None: ...


def test_unresolvable_annotations_fail_registration() -> None:
    registry = EndpointRegistry()
    with pytest.raises(ConfigurationError, match="cannot evaluate parameter annotations") as exc:
        registry.register_function(search_with_deferred_hint)
    assert isinstance(exc.value.cause, NameError)
    assert len(registry) == 0


class BaseAccounts:
    @request(url="http://h/accounts/${0}")
    def get(self, account_id: int) -> None: ...

    @request(url="http://h/accounts")
    def list(self) -> None: ...


class AuditedAccounts(BaseAccounts):
    @request(url="http://h/audited/accounts")
    def list(self) -> None: ...

    @request(url="http://h/audit")
    def audit(self) -> None: ...


def test_register_interface_includes_inherited_methods() -> None:
    registry = EndpointRegistry()
    ids = registry.register_interface(AuditedAccounts)
    assert ids == ["AuditedAccounts.list", "AuditedAccounts.audit", "AuditedAccounts.get"]
    assert registry.assemble("AuditedAccounts.list").path == "/audited/accounts"
    assert registry.assemble("AuditedAccounts.get", [3]).path == "/accounts/3"
