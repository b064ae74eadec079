"""
Variable scopes used when rendering templates.

Names resolve first against the variables declared by the endpoint's own
parameters (using the current call's arguments), then against the process-wide
variables of the configuration snapshot.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from .exceptions import VariableNotFoundError
from .filters import EMPTY_CHAIN, FilterChain

if TYPE_CHECKING:
    from .config import Configuration


class VariableScope(Protocol):
    def resolve(self, name: str) -> Any:
        """Return the value bound to `name` or raise `VariableNotFoundError`."""
        ...


@dataclass(frozen=True, slots=True)
class MappingVariable:
    """A named variable backed by one call argument."""

    name: str
    index: int
    annotation: Any = Any
    filter_chain: FilterChain = field(default=EMPTY_CHAIN)

    def value(self, args: Sequence[Any], configuration: Configuration) -> Any:
        return self.filter_chain.apply(args[self.index], configuration)


class ConfigurationScope:
    """Process-wide scope backed by the configuration's named variables."""

    def __init__(self, configuration: Configuration):
        self._configuration = configuration

    def resolve(self, name: str) -> Any:
        variables = self._configuration.variables
        if name in variables:
            return variables[name]
        raise VariableNotFoundError(f"Variable '{name}' is not defined", name=name)


class CallScope:
    """
    Scope for a single invocation.

    Created fresh per call; holds the call's arguments and never mutates the
    shared variable map or configuration.
    """

    def __init__(
        self,
        variables: Mapping[str, MappingVariable],
        args: Sequence[Any],
        configuration: Configuration,
    ):
        self._variables = variables
        self._args = args
        self._configuration = configuration
        self._fallback = ConfigurationScope(configuration)

    @property
    def args(self) -> Sequence[Any]:
        return self._args

    def resolve(self, name: str) -> Any:
        variable = self._variables.get(name)
        if variable is not None:
            return variable.value(self._args, self._configuration)
        return self._fallback.resolve(name)
