"""
Exception hierarchy for declarest.

Registration-time problems derive from `ConfigurationError`; everything else is
raised while assembling a single request and aborts that invocation.
"""

from __future__ import annotations


class DeclarestError(Exception):
    """Base exception for all declarest errors."""

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Registration Errors
# =============================================================================


class ConfigurationError(DeclarestError):
    """An endpoint or configuration snapshot cannot be built."""


class UnknownFilterError(ConfigurationError):
    """A filter name does not resolve in the filter registry."""

    def __init__(self, message: str, *, filter_name: str):
        super().__init__(message)
        self.filter_name = filter_name


class InterceptorTypeError(ConfigurationError):
    """A declared interceptor class does not implement `Interceptor`."""

    def __init__(self, message: str, *, interceptor: object):
        super().__init__(message)
        self.interceptor = interceptor


class UnknownCredentialError(ConfigurationError):
    """A request names a credential bundle that is not configured."""

    def __init__(self, message: str, *, key_store: str):
        super().__init__(message)
        self.key_store = key_store


# =============================================================================
# Invocation Errors
# =============================================================================


class TemplateResolutionError(DeclarestError):
    """A template placeholder cannot be resolved against the call."""


class VariableNotFoundError(TemplateResolutionError):
    """A name resolves in neither the call scope nor the configuration."""

    def __init__(self, message: str, *, name: str):
        super().__init__(message)
        self.name = name


class MalformedUrlError(DeclarestError):
    """The composed URL is not a syntactically valid absolute URL."""

    def __init__(self, message: str, *, url: str, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.url = url


class UnknownDataTypeError(DeclarestError):
    """The rendered data type matches no known `DataType`."""

    def __init__(self, message: str, *, value: str):
        super().__init__(message)
        self.value = value


class ReflectionAccessError(DeclarestError):
    """Reading the fields of an object parameter failed."""


class SerializationError(DeclarestError):
    """A parameter value cannot be converted to JSON."""


class RequestExecutionError(DeclarestError):
    """The transport failed to execute an assembled request."""

    def __init__(
        self,
        message: str,
        *,
        response: object | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause=cause)
        self.response = response
