"""Wall-clock helpers."""
import time


def unix_now() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())
