"""Wall-clock implementation of Clock."""

from datetime import datetime

from remotedev.core.interfaces.clock import Clock
from remotedev.core.models.base import utc_now


class SystemClock(Clock):
    def now(self) -> datetime:
        return utc_now()
