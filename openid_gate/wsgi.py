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
WSGI binding for `AuthenticationGate`.

`GateMiddleware` evaluates every request that passes through it:

* when the gate answers `RedirectTo`, the middleware sends a `302 Found`
  and the wrapped application never sees the request;
* when the gate answers `Authenticated`, the verified identity is placed in
  the WSGI environment (under `GateConfig.identity_key`) for the wrapped
  application to pick up, e.g. with `identity_from_environ`;
* when the gate fails to resolve or verify an identity, the error is placed
  in the environment (under `GateConfig.error_key`) so that the application
  can re-show its login form with a message.

Example:

```python
app = GateMiddleware(my_app, AuthenticationGate(static_secret(secret)))
```
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from paste.request import construct_url, parse_formvars

from openid_gate.config import GateConfig
from openid_gate.errors import (
    ConfigurationError,
    Error,
    IdentityResolutionError,
    IdentityVerificationError,
)
from openid_gate.gate import (
    Authenticated,
    AuthenticationGate,
    IncomingRequest,
    RedirectTo,
)
from openid_gate.models import VerifiedIdentity
from openid_gate.secret import static_secret

_logger = logging.getLogger(__name__)

# NOTE: These are PEP 3333 types; we don't depend on a framework for them.
WSGIEnvironment = Dict[str, Any]
WSGIApplication = Any
StartResponse = Any


def request_from_environ(
    environ: WSGIEnvironment, base: Optional[str] = None
) -> IncomingRequest:
    """
    Returns an `IncomingRequest` for the given WSGI environment.

    Query and form parameters are merged; when a parameter is repeated, its
    first value wins. File uploads are ignored. `base` defaults to the
    request's own URL, without its query string.
    """
    params: Dict[str, str] = {}
    # Paste's MultiDict yields one item per value; uploads aren't strings.
    for name, value in parse_formvars(environ).items():
        if isinstance(value, str) and name not in params:
            params[name] = value

    if base is None:
        base = construct_url(environ, with_query_string=False)

    return IncomingRequest(params=params, base=base)


def identity_from_environ(
    environ: WSGIEnvironment, key: str = GateConfig().identity_key
) -> Optional[VerifiedIdentity]:
    """
    Returns the identity `GateMiddleware` verified for this request, if any.
    """
    return environ.get(key)


def error_from_environ(
    environ: WSGIEnvironment, key: str = GateConfig().error_key
) -> Optional[Error]:
    """
    Returns the error `GateMiddleware` recorded for this request, if any.
    """
    return environ.get(key)


def _redirect(url: str, start_response: StartResponse) -> Iterable[bytes]:
    body = f"Redirecting to {url}".encode()
    start_response(
        "302 Found",
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("Content-Length", str(len(body))),
            ("Location", url),
        ],
    )
    return [body]


class GateMiddleware:
    """
    WSGI middleware that runs an `AuthenticationGate` on every request.
    """

    def __init__(
        self,
        app: WSGIApplication,
        gate: AuthenticationGate,
        *,
        base: Optional[str] = None,
    ) -> None:
        """
        Create a new `GateMiddleware` around `app`.

        `base` pins the application's base URI (e.g. when running behind a
        proxy that rewrites hosts); by default it's reconstructed from each
        request.
        """
        self.app = app
        self.gate = gate
        self.base = base

    def __call__(
        self, environ: WSGIEnvironment, start_response: StartResponse
    ) -> Iterable[bytes]:
        config = self.gate.config
        request = request_from_environ(environ, base=self.base)

        try:
            result = self.gate.evaluate(request)
        except (IdentityResolutionError, IdentityVerificationError) as exc:
            _logger.warning(f"OpenID login failed: {exc}")
            environ[config.error_key] = exc
            return self.app(environ, start_response)  # type: ignore[no-any-return]

        if isinstance(result, RedirectTo):
            return _redirect(result.url, start_response)
        elif isinstance(result, Authenticated):
            environ[config.identity_key] = result.identity

        return self.app(environ, start_response)  # type: ignore[no-any-return]


def make_middleware(
    app: WSGIApplication,
    global_conf: Optional[Dict[str, Any]] = None,
    secret: Optional[str] = None,
    base: Optional[str] = None,
) -> GateMiddleware:
    """
    A `paste.filter_app_factory` for `GateMiddleware`.

    `secret` is required; the remaining settings come from the
    `OPENID_GATE_*` environment variables (see `GateConfig.from_env`).
    """
    if not secret:
        raise ConfigurationError("the gate filter requires a `secret` setting")

    gate = AuthenticationGate(static_secret(secret), config=GateConfig.from_env())
    return GateMiddleware(app, gate, base=base)
