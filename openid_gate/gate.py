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
The authentication gate: a per-request dispatcher over the three phases of
an OpenID login.

An OpenID login spans several HTTP requests, since the user's browser is
bounced between the application and their identity provider:

1. The user submits a claimed identifier (the `claimed_uri` parameter).
   The gate resolves it and answers with `RedirectTo` the provider.
2. The provider authenticates the user and redirects back to the
   application with the `openid-check` marker, plus its own parameters.
   The gate asks the consumer to interpret them, answering with
   `RedirectTo` (the provider needs more interaction), `Unauthenticated`
   (the user cancelled), or `Authenticated`.
3. Anything else is `Unauthenticated`: the application should show its
   login form.

The gate keeps no state between requests; continuity is carried entirely by
the redirect chain. Looking up users, issuing sessions and installing the
redirect response are all left to the caller (see `openid_gate.wsgi` for
one such caller).

Example:

```python
gate = AuthenticationGate(static_secret(os.environ["LOGIN_SECRET"]))
result = gate.evaluate(IncomingRequest(params=params, base=base))
```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from openid.oidutil import appendArgs

from openid_gate.config import GateConfig
from openid_gate.consumer import Consumer, ConsumerFactory, OpenIDConsumerFactory
from openid_gate.errors import (
    ConfigurationError,
    IdentityResolutionError,
    IdentityVerificationError,
)
from openid_gate.models import IncomingRequest, VerifiedIdentity
from openid_gate.secret import ConsumerSecret, is_insecure

__all__ = [
    "AuthenticationGate",
    "Authenticated",
    "GateResult",
    "IncomingRequest",
    "RedirectTo",
    "Unauthenticated",
]

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    """
    The outcome of evaluating a single request.
    """


@dataclass(frozen=True)
class Unauthenticated(GateResult):
    """
    No identity was established; the caller should carry on (typically by
    showing a login form).
    """


@dataclass(frozen=True)
class RedirectTo(GateResult):
    """
    The user's browser must be sent to `url` before anything else happens.
    """

    url: str


@dataclass(frozen=True)
class Authenticated(GateResult):
    """
    The provider's assertion was verified.
    """

    identity: VerifiedIdentity


def _truthy(value: Optional[str]) -> bool:
    # "0" is the conventional way of turning a marker off.
    return bool(value) and value != "0"


class AuthenticationGate:
    """
    Decides, from request parameters alone, which phase of an OpenID login
    a request belongs to.
    """

    def __init__(
        self,
        consumer_secret: Optional[ConsumerSecret],
        *,
        consumer_factory: Optional[ConsumerFactory] = None,
        config: Optional[GateConfig] = None,
    ) -> None:
        """
        Create a new `AuthenticationGate`.

        `consumer_secret` is required; see `openid_gate.secret` for the
        available policies. `consumer_factory` defaults to a python3-openid
        backed `OpenIDConsumerFactory` configured from `config`.
        """
        if consumer_secret is None:
            raise ConfigurationError(
                "a consumer secret is required; see openid_gate.secret"
            )
        if is_insecure(consumer_secret):
            _logger.warning(
                "using the identity consumer secret: return-to URLs are not "
                "protected against replay"
            )

        self.config = config or GateConfig()
        self._consumer_secret = consumer_secret
        self._consumer_factory = (
            consumer_factory or OpenIDConsumerFactory.from_config(self.config)
        )

    def _consumer(self, request: IncomingRequest) -> Consumer:
        return self._consumer_factory(request, self._consumer_secret)

    def return_to(self, request: IncomingRequest) -> str:
        """
        Returns the URL the provider should send the user back to.
        """
        return str(appendArgs(request.base, {self.config.check_param: "1"}))

    def evaluate(self, request: IncomingRequest) -> GateResult:
        """
        Evaluates `request`, returning the `GateResult` for its phase.

        Raises `IdentityResolutionError` if a claimed identifier can't be
        resolved, and `IdentityVerificationError` if a provider callback
        can't be verified.
        """
        claimed_uri = request.param(self.config.claimed_param)
        if claimed_uri:
            return self._begin(request, claimed_uri)
        elif _truthy(request.param(self.config.check_param)):
            return self._check(request)

        return Unauthenticated()

    def _begin(self, request: IncomingRequest, claimed_uri: str) -> GateResult:
        _logger.debug(f"resolving claimed identifier {claimed_uri}")
        consumer = self._consumer(request)

        identity = consumer.claimed_identity(claimed_uri)
        if identity is None:
            raise IdentityResolutionError(consumer.err())

        check_url = identity.check_url(
            return_to=self.return_to(request), trust_root=request.base
        )
        _logger.debug(f"redirecting {claimed_uri} to {check_url}")
        return RedirectTo(check_url)

    def _check(self, request: IncomingRequest) -> GateResult:
        consumer = self._consumer(request)

        setup_url = consumer.user_setup_url()
        if setup_url:
            _logger.debug(f"provider requested setup at {setup_url}")
            return RedirectTo(setup_url)
        elif consumer.user_cancel():
            _logger.info("user cancelled authentication at the provider")
            return Unauthenticated()

        identity = consumer.verified_identity()
        if identity is None:
            raise IdentityVerificationError(consumer.err())

        _logger.info(f"verified identity {identity.uri}")
        return Authenticated(identity)
