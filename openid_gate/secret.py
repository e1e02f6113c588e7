# Copyright 2026 The openid-gate Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Consumer secrets, and the signed timestamps they protect.

Before sending a user to their identity provider, the consumer appends an
`oic.time` parameter to the return-to URL: the current time, followed by
an HMAC of that time keyed by the consumer secret. When the provider sends
the user back, the consumer refuses any assertion whose timestamp is forged
or stale. This keeps old (or fabricated) callback URLs from being replayed
against the application.

A consumer secret is any callable that maps a timestamp (as a string) to
the secret used for that timestamp. This lets applications rotate secrets
over time without invalidating logins that are in flight.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from cryptography.hazmat.primitives import constant_time, hashes, hmac

from openid_gate.errors import ConfigurationError, ReturnToSignatureError

_logger = logging.getLogger(__name__)

ConsumerSecret = Callable[[str], str]
"""
A function from a timestamp string to the secret used to sign it.
"""

TIMESTAMP_PARAM = "oic.time"
"""
The return-to query parameter that carries the signed timestamp.
"""

_SIGNATURE_LENGTH = 20


def static_secret(value: str) -> ConsumerSecret:
    """
    Returns a `ConsumerSecret` that uses `value` for every timestamp.
    """
    if not value:
        raise ConfigurationError("consumer secret must not be empty")

    def _secret(_timestamp: str) -> str:
        return value

    return _secret


def insecure_identity_secret(timestamp: str) -> str:
    """
    A `ConsumerSecret` that returns the timestamp itself.

    Anybody can compute a valid signature with this "secret", so it offers
    no protection against replayed callbacks. It exists for compatibility
    with deployments that never configured a secret, and must be chosen
    explicitly.
    """
    return timestamp


def is_insecure(secret: ConsumerSecret) -> bool:
    """
    Returns whether `secret` is the (unprotected) identity secret.
    """
    return secret is insecure_identity_secret


def _signature(secret: ConsumerSecret, timestamp: str) -> str:
    key = secret(timestamp).encode()
    mac = hmac.HMAC(key, hashes.SHA1())
    mac.update(timestamp.encode())
    return mac.finalize().hex()[:_SIGNATURE_LENGTH]


def sign_timestamp(secret: ConsumerSecret, timestamp: Optional[int] = None) -> str:
    """
    Returns a signed `oic.time` value of the form `<timestamp>-<signature>`.

    `timestamp` defaults to the current time.
    """
    if timestamp is None:
        timestamp = int(time.time())

    ts = str(timestamp)
    return f"{ts}-{_signature(secret, ts)}"


def check_timestamp(
    secret: ConsumerSecret,
    value: Optional[str],
    *,
    max_age: int,
    max_skew: int,
    now: Optional[int] = None,
) -> int:
    """
    Checks a signed `oic.time` value produced by `sign_timestamp`, returning
    the timestamp it carries.

    Raises `ReturnToSignatureError` if the value is missing or malformed
    (`time_bad_sig`), older than `max_age` seconds (`time_expired`), more
    than `max_skew` seconds in the future (`time_in_future`), or carries a
    signature that doesn't match (`time_bad_sig`).
    """
    if now is None:
        now = int(time.time())

    ts, _, sig = (value or "").partition("-")
    # Only ASCII digits: str.isdigit() also accepts "²", which int() refuses.
    if not (ts.isascii() and ts.isdigit()) or not sig:
        raise ReturnToSignatureError("time_bad_sig")

    timestamp = int(ts)
    if timestamp < now - max_age:
        raise ReturnToSignatureError("time_expired")
    if timestamp > now + max_skew:
        raise ReturnToSignatureError("time_in_future")

    expected = _signature(secret, ts)
    if not constant_time.bytes_eq(expected.encode(), sig.encode()):
        _logger.debug(f"return-to signature mismatch for timestamp {ts}")
        raise ReturnToSignatureError("time_bad_sig")

    return timestamp
