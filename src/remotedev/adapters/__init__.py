"""Concrete implementations of core interfaces."""

from remotedev.adapters.clock.system import SystemClock
from remotedev.adapters.schema.registry import PydanticSchemaValidator, get_schema_validator
from remotedev.adapters.sealer.fernet import FernetSealer, get_sealer

__all__ = [
    "SystemClock",
    "FernetSealer",
    "get_sealer",
    "PydanticSchemaValidator",
    "get_schema_validator",
]
