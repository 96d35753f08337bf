"""Clock interface used for all timestamp stamping."""

from abc import ABC, abstractmethod
from datetime import datetime


class Clock(ABC):
    """Time source. Implementations must return timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...
