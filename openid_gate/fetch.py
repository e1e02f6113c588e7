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
HTTP fetching for the OpenID consumer, via `requests`.

python3-openid performs its own discovery and verification requests through
a process-wide "default fetcher". `RequestsFetcher` is that fetcher: it
reuses one `requests.Session`, identifies itself with openid-gate's
User-Agent, always applies bounded connect/read timeouts, and stops reading
response bodies at python3-openid's size limit.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

import requests
from openid import fetchers

from openid_gate._internal import USER_AGENT
from openid_gate.errors import NetworkError

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Matches python3-openid's own limit on response bodies.
MAX_RESPONSE_BYTES = fetchers.MAX_RESPONSE_KB * 1024

_CHUNK_SIZE = 8192


class RequestsFetcher(fetchers.HTTPFetcher):
    """
    An `openid.fetchers.HTTPFetcher` backed by a `requests.Session`.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Create a new `RequestsFetcher`.

        `timeout` bounds both connecting to and reading from each server.
        """
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT})
        self.session = session

    def fetch(
        self,
        url: str,
        body: Optional[Union[str, bytes]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> fetchers.HTTPResponse:
        """
        Performs a GET (or, when `body` is given, a POST) against `url`.

        Non-success statuses are returned rather than raised, since the
        OpenID library interprets them itself.
        """
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"refusing to fetch non-HTTP URL: {url}")

        method = "POST" if body is not None else "GET"
        _logger.debug(f"{method} {url}")

        try:
            resp: requests.Response = self.session.request(
                method,
                url,
                data=body,
                headers=headers,
                timeout=(self.timeout, self.timeout),
                stream=True,
            )
            try:
                content = _read_limited(resp, MAX_RESPONSE_BYTES)
            finally:
                resp.close()
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

        _logger.debug(f"{method} {url} -> {resp.status_code} ({resp.url})")

        return fetchers.HTTPResponse(
            final_url=resp.url,
            status=resp.status_code,
            headers={k.lower(): v for k, v in resp.headers.items()},
            body=_decode(content, resp.encoding),
        )


def _read_limited(resp: requests.Response, limit: int) -> bytes:
    """
    Reads at most `limit` bytes of `resp`'s (decompressed) body, and stops
    pulling from the connection once that many have arrived.
    """
    chunks: list[bytes] = []
    size = 0
    for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
        chunks.append(chunk)
        size += len(chunk)
        if size >= limit:
            break
    return b"".join(chunks)[:limit]


def _decode(content: bytes, encoding: Optional[str]) -> str:
    try:
        return content.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        # Unknown charset in the Content-Type header.
        return content.decode("utf-8", errors="replace")


def install(fetcher: fetchers.HTTPFetcher) -> None:
    """
    Makes `fetcher` python3-openid's default fetcher.

    This is process-wide state: every consumer in the process uses the
    most recently installed fetcher.
    """
    _logger.debug(f"installing OpenID fetcher: {fetcher!r}")
    fetchers.setDefaultFetcher(fetcher, wrap_exceptions=True)
