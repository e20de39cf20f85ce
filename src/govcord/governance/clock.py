"""Time source for the governance engines (unix seconds, UTC)."""

import time
from typing import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())
