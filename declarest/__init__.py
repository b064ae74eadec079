"""
declarest: declarative HTTP request construction.

Endpoints are declared once (decorators or TOML manifests), compiled into
immutable method descriptors, and assembled per call into request descriptors
that a transport executes.
"""

from __future__ import annotations

from .assembler import assemble
from .callbacks import OnError, OnSuccess
from .client import Client
from .config import Configuration, CredentialBundle, load_configuration
from .converters import JsonConverter, PydanticJsonConverter, iter_object_fields
from .descriptor import MethodDescriptor, build_method_descriptor
from .exceptions import (
    ConfigurationError,
    DeclarestError,
    InterceptorTypeError,
    MalformedUrlError,
    ReflectionAccessError,
    RequestExecutionError,
    SerializationError,
    TemplateResolutionError,
    UnknownCredentialError,
    UnknownDataTypeError,
    UnknownFilterError,
    VariableNotFoundError,
)
from .filters import FilterChain, FilterRegistry, default_filter_registry
from .http import DataType, NameValue, RequestDescriptor
from .interceptors import Interceptor, InterceptorFactory
from .models import DataObject, DataParam, DataVariable, InterfaceSpec, ParameterInfo, RequestSpec
from .policies import effective
from .registry import EndpointRegistry, describe_function, interface, request
from .templates import Template, compile_template
from .transport import Backend, HttpxBackend
from .urls import NormalizedUrl, normalize_url

__version__ = "0.3.0"

__all__ = [
    "Backend",
    "Client",
    "Configuration",
    "ConfigurationError",
    "CredentialBundle",
    "DataObject",
    "DataParam",
    "DataType",
    "DataVariable",
    "DeclarestError",
    "EndpointRegistry",
    "FilterChain",
    "FilterRegistry",
    "HttpxBackend",
    "Interceptor",
    "InterceptorFactory",
    "InterceptorTypeError",
    "InterfaceSpec",
    "JsonConverter",
    "MalformedUrlError",
    "MethodDescriptor",
    "NameValue",
    "NormalizedUrl",
    "OnError",
    "OnSuccess",
    "ParameterInfo",
    "PydanticJsonConverter",
    "ReflectionAccessError",
    "RequestDescriptor",
    "RequestExecutionError",
    "RequestSpec",
    "SerializationError",
    "Template",
    "TemplateResolutionError",
    "UnknownCredentialError",
    "UnknownDataTypeError",
    "UnknownFilterError",
    "VariableNotFoundError",
    "__version__",
    "assemble",
    "build_method_descriptor",
    "compile_template",
    "default_filter_registry",
    "describe_function",
    "effective",
    "interface",
    "iter_object_fields",
    "load_configuration",
    "normalize_url",
    "request",
]
