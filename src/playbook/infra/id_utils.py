"""Prefixed ID generation.

Every ID the chat service mints follows ``{prefix}_{random}`` so it can
be recognised at a glance:

- ``chat_a8Kx3nQ9mP2r``  chat session
- ``msg_kJ3pW7mD4bNx``   persisted turn

Provider IDs (``resp_...`` response ids, ``call_...`` tool call ids)
are stored as received.
"""

import secrets
import string

_ALPHABET = string.ascii_letters + string.digits
_DEFAULT_LENGTH = 16

CHAT_PREFIX = "chat"
MESSAGE_PREFIX = "msg"


def generate_id(prefix: str, length: int = _DEFAULT_LENGTH) -> str:
    """Return ``"{prefix}_{random}"`` with *length* alphanumeric characters."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{prefix}_{suffix}"
