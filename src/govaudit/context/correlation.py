"""Correlation id generation for entries logged outside a request."""

import itertools
import secrets
import string
import threading
import time
from typing import Optional

_ALPHABET = string.ascii_lowercase + string.digits

_counter = itertools.count(1)
_counter_lock = threading.Lock()


def _random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_correlation_id(client_id: Optional[str] = None) -> str:
    """Build '<client prefix>-<epoch ms>-<counter>-<random>'."""
    with _counter_lock:
        counter = next(_counter) % 10000
    prefix = (client_id or "govaudit")[:10]
    return f"{prefix}-{int(time.time() * 1000)}-{counter}-{_random_suffix()}"


def generate_server_correlation_id() -> str:
    """Correlation id for inbound requests that did not carry one."""
    return f"server-{int(time.time() * 1000)}-{_random_suffix()}"
