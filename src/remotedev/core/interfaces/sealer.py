"""Sealed value capability interface."""

from abc import ABC, abstractmethod

from remotedev.core.domain.sealed import SealedValue


class Sealer(ABC):
    """Encrypts plaintext into SealedValue tokens and back.

    Keyed by a process-wide secret that is not managed here.
    """

    @abstractmethod
    def seal(self, plaintext: str) -> SealedValue:
        """Seal a non-empty plaintext.

        Raises:
            ValueError: If plaintext is empty
        """
        ...

    @abstractmethod
    def unseal(self, sealed: SealedValue) -> str:
        """Open a sealed value. Empty sealed values open to ""."""
        ...
