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
The OpenID consumer collaborator.

The gate never speaks the OpenID protocol itself. Instead, it asks a
per-request `Consumer` to resolve claimed identifiers and to interpret
provider callbacks. `OpenIDConsumer` is the default implementation, built
on top of the `python3-openid` library; anything implementing the
`Consumer` protocol (e.g. a test double) can be used in its place.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from openid.consumer import consumer as oidconsumer
from openid.consumer.discover import DiscoveryFailure
from openid.fetchers import HTTPFetcher, HTTPFetchingError
from openid.oidutil import appendArgs

from openid_gate import fetch
from openid_gate.config import GateConfig
from openid_gate.errors import ReturnToSignatureError
from openid_gate.models import IncomingRequest, VerifiedIdentity
from openid_gate.secret import (
    TIMESTAMP_PARAM,
    ConsumerSecret,
    check_timestamp,
    sign_timestamp,
)

_logger = logging.getLogger(__name__)


class ClaimedIdentity(Protocol):
    """
    A claimed identifier that has been resolved to an identity server.
    """

    def check_url(self, return_to: str, trust_root: str) -> str:
        """
        Returns the URL to send the user's browser to, so that the identity
        server can authenticate them and redirect back to `return_to`.
        """
        ...  # pragma: no cover


class Consumer(Protocol):
    """
    A per-request OpenID consumer.
    """

    def claimed_identity(self, uri: str) -> Optional[ClaimedIdentity]:
        """
        Resolves `uri`, returning `None` (and recording `err()`) on failure.
        """
        ...  # pragma: no cover

    def user_setup_url(self) -> Optional[str]:
        """
        Returns a URL if the provider wants further interaction with the user.
        """
        ...  # pragma: no cover

    def user_cancel(self) -> bool:
        """
        Returns whether the user cancelled authentication at the provider.
        """
        ...  # pragma: no cover

    def verified_identity(self) -> Optional[VerifiedIdentity]:
        """
        Returns the verified identity, or `None` (and records `err()`).
        """
        ...  # pragma: no cover

    def err(self) -> str:
        """
        Returns a description of the most recent failure.
        """
        ...  # pragma: no cover


class ConsumerFactory(Protocol):
    """
    Builds a fresh `Consumer` for each request.
    """

    def __call__(
        self, request: IncomingRequest, consumer_secret: ConsumerSecret
    ) -> Consumer: ...  # pragma: no cover


class _OpenIDClaimedIdentity:
    def __init__(
        self, auth_request: oidconsumer.AuthRequest, consumer_secret: ConsumerSecret
    ) -> None:
        self._auth_request = auth_request
        self._consumer_secret = consumer_secret

    @property
    def server_url(self) -> str:
        return str(self._auth_request.endpoint.server_url)

    def check_url(self, return_to: str, trust_root: str) -> str:
        signed_return_to = appendArgs(
            return_to, {TIMESTAMP_PARAM: sign_timestamp(self._consumer_secret)}
        )
        return str(
            self._auth_request.redirectURL(trust_root, return_to=signed_return_to)
        )


class OpenIDConsumer:
    """
    A `Consumer` backed by `python3-openid`.

    The underlying consumer runs without a server-side session: every
    instance gets a throwaway session dictionary, and provider callbacks
    are verified by re-running discovery on the asserted identifier. Pass
    an `openid.store.interface.OpenIDStore` as `store` to use associations
    instead of direct verification.
    """

    def __init__(
        self,
        request: IncomingRequest,
        consumer_secret: ConsumerSecret,
        *,
        store: Any = None,
        max_signature_age: int = 600,
        max_clock_skew: int = 3600,
    ) -> None:
        """
        Create a new `OpenIDConsumer` for `request`.
        """
        self._params: Dict[str, str] = dict(request.params)
        self._current_url = request.base
        self._consumer_secret = consumer_secret
        self._max_signature_age = max_signature_age
        self._max_clock_skew = max_clock_skew

        self._consumer = oidconsumer.Consumer({}, store)
        self._response: Optional[oidconsumer.Response] = None
        self._err = ""

    def _fail(self, err: str) -> None:
        _logger.debug(f"consumer failure: {err}")
        self._err = err
        return None

    def err(self) -> str:
        """
        Returns a description of the most recent failure.
        """
        return self._err

    def claimed_identity(self, uri: str) -> Optional[ClaimedIdentity]:
        """
        Performs discovery on `uri`.
        """
        uri = uri.strip()
        if not uri:
            return self._fail("no_identity")

        try:
            auth_request = self._consumer.begin(uri)
        except DiscoveryFailure as exc:
            return self._fail(f"no_identity_server: {exc}")

        identity = _OpenIDClaimedIdentity(auth_request, self._consumer_secret)
        _logger.debug(f"resolved {uri} to identity server {identity.server_url}")
        return identity

    def _complete(self) -> oidconsumer.Response:
        # Every callback accessor shares one verification round-trip.
        if self._response is None:
            try:
                self._response = self._consumer.complete(
                    self._params, self._current_url
                )
            except HTTPFetchingError as exc:
                # Re-discovery of the claimed identifier isn't guarded by
                # python3-openid itself.
                self._response = oidconsumer.FailureResponse(
                    None, f"network_error: {exc.why}"
                )
            _logger.debug(f"provider response status: {self._response.status}")
        return self._response

    def user_setup_url(self) -> Optional[str]:
        """
        Returns the provider's setup URL, if it asked for one.
        """
        response = self._complete()
        if response.status == oidconsumer.SETUP_NEEDED:
            return response.setup_url  # type: ignore[no-any-return]
        return None

    def user_cancel(self) -> bool:
        """
        Returns whether the provider reported a cancellation.
        """
        return bool(self._complete().status == oidconsumer.CANCEL)

    def verified_identity(self) -> Optional[VerifiedIdentity]:
        """
        Returns the identity the provider asserted, provided that both the
        assertion and the signed return-to timestamp check out.
        """
        response = self._complete()
        if response.status == oidconsumer.FAILURE:
            return self._fail(response.message or "assertion_failed")
        if response.status != oidconsumer.SUCCESS:
            return self._fail(f"unexpected_response: {response.status}")

        try:
            check_timestamp(
                self._consumer_secret,
                self._params.get(TIMESTAMP_PARAM),
                max_age=self._max_signature_age,
                max_skew=self._max_clock_skew,
            )
        except ReturnToSignatureError as exc:
            return self._fail(exc.reason)

        return VerifiedIdentity(
            uri=response.identity_url,
            display=response.getDisplayIdentifier(),
            server_url=response.endpoint.server_url,
        )


class OpenIDConsumerFactory:
    """
    A `ConsumerFactory` for `OpenIDConsumer`.

    Creating the factory installs `fetcher` as python3-openid's default
    fetcher (see `openid_gate.fetch.install`).
    """

    def __init__(
        self,
        fetcher: Optional[HTTPFetcher] = None,
        *,
        store: Any = None,
        max_signature_age: int = 600,
        max_clock_skew: int = 3600,
    ) -> None:
        """
        Create a new `OpenIDConsumerFactory`.
        """
        if fetcher is None:
            fetcher = fetch.RequestsFetcher()
        fetch.install(fetcher)

        self._store = store
        self._max_signature_age = max_signature_age
        self._max_clock_skew = max_clock_skew

    @classmethod
    def from_config(
        cls, config: GateConfig, *, store: Any = None
    ) -> OpenIDConsumerFactory:
        """
        Returns an `OpenIDConsumerFactory` tuned by `config`.
        """
        return cls(
            fetch.RequestsFetcher(timeout=config.fetch_timeout),
            store=store,
            max_signature_age=config.max_signature_age,
            max_clock_skew=config.max_clock_skew,
        )

    def __call__(
        self, request: IncomingRequest, consumer_secret: ConsumerSecret
    ) -> OpenIDConsumer:
        return OpenIDConsumer(
            request,
            consumer_secret,
            store=self._store,
            max_signature_age=self._max_signature_age,
            max_clock_skew=self._max_clock_skew,
        )
