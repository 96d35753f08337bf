"""Schema validator interface for agent config documents."""

from abc import ABC, abstractmethod
from typing import Any


class SchemaValidator(ABC):
    """Validates resource-shape and network-policy documents."""

    @abstractmethod
    def validate(self, document: Any, schema_name: str) -> list[str]:
        """Validate document against a named schema.

        Args:
            document: Parsed document (dict/list)
            schema_name: Registered schema name

        Returns:
            Error messages; empty list means valid.

        Raises:
            KeyError: If schema_name is not registered
        """
        ...
