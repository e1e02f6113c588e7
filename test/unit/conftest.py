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

from __future__ import annotations

from typing import Any, Callable, Optional

import pretend
import pytest

from openid_gate.models import IncomingRequest, VerifiedIdentity
from openid_gate.secret import ConsumerSecret, static_secret

BASE = "https://app.example/login"


@pytest.fixture
def secret() -> ConsumerSecret:
    return static_secret("s3cr3t")


@pytest.fixture
def incoming() -> Callable[..., IncomingRequest]:
    def _incoming(
        params: Optional[dict[str, str]] = None, base: str = BASE
    ) -> IncomingRequest:
        return IncomingRequest(params=params or {}, base=base)

    return _incoming


@pytest.fixture
def alice() -> VerifiedIdentity:
    return VerifiedIdentity(
        uri="https://example.com/alice",
        display="example.com/alice",
        server_url="https://provider.example/server",
    )


@pytest.fixture
def stub_consumer():
    """
    Returns a helper that builds a stub `Consumer`, with every method
    wrapped in a call recorder.
    """

    def _stub_consumer(
        *,
        claimed: Any = None,
        setup_url: Optional[str] = None,
        cancel: bool = False,
        verified: Optional[VerifiedIdentity] = None,
        err: str = "",
    ):
        return pretend.stub(
            claimed_identity=pretend.call_recorder(lambda uri: claimed),
            user_setup_url=pretend.call_recorder(lambda: setup_url),
            user_cancel=pretend.call_recorder(lambda: cancel),
            verified_identity=pretend.call_recorder(lambda: verified),
            err=pretend.call_recorder(lambda: err),
        )

    return _stub_consumer


@pytest.fixture
def factory_for():
    """
    Returns a helper that wraps a consumer in a recording `ConsumerFactory`.
    """

    def _factory_for(consumer):
        return pretend.call_recorder(lambda request, consumer_secret: consumer)

    return _factory_for
