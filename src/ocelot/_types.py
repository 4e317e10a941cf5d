"""Shared type definitions for ocelot."""

from collections.abc import Callable
from typing import Any, Literal, TypeAlias

# Plugin hook or loader; may be sync or async
HookFunc: TypeAlias = Callable[..., Any]

# Mode of operation
OcelotMode: TypeAlias = Literal["build", "develop"]
