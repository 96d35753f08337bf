"""Interfaces for capabilities consumed by the reconciliation core."""

from remotedev.core.interfaces.clock import Clock
from remotedev.core.interfaces.schema_validator import SchemaValidator
from remotedev.core.interfaces.sealer import Sealer

__all__ = [
    "Clock",
    "SchemaValidator",
    "Sealer",
]
