"""Sealed (encrypted at rest) value wrapper."""


class SealedValue:
    """Opaque ciphertext token.

    Only a Sealer can produce or open one. repr/str never show the token so
    it cannot leak into logs by accident. An empty token is an explicitly
    blank value and opens to "".
    """

    __slots__ = ("_token",)

    def __init__(self, token: str) -> None:
        self._token = token

    @classmethod
    def empty(cls) -> "SealedValue":
        return cls("")

    @property
    def token(self) -> str:
        return self._token

    def is_empty(self) -> bool:
        return self._token == ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SealedValue):
            return NotImplemented
        return self._token == other._token

    def __hash__(self) -> int:
        return hash(self._token)

    def __repr__(self) -> str:
        return "SealedValue(<empty>)" if self.is_empty() else "SealedValue(<sealed>)"

    __str__ = __repr__
