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
Exceptions.
"""

import sys
from logging import Logger


class Error(Exception):
    """Base openid-gate exception type. Defines helpers for diagnostics."""

    def diagnostics(self) -> str:
        """Returns human-friendly error information."""

        return str(self)

    def log_and_exit(self, logger: Logger, raise_error: bool = False) -> None:
        """Prints all relevant error information to stderr and exits."""

        remind_verbose = (
            "Raising original exception:"
            if raise_error
            else "For detailed error information, run openid-gate with the `--verbose` flag."
        )

        logger.error(f"{self.diagnostics()}\n{remind_verbose}")

        if raise_error:
            # don't want "during handling another exception"
            self.__suppress_context__ = True
            raise self

        sys.exit(1)


class NetworkError(Error):
    """
    Raised when an identity provider (or claimed identifier's host) can't be
    reached.

    python3-openid wraps this in its own `HTTPFetchingError`, so the message
    is what ends up in the consumer's `err()` detail.
    """


class ConfigurationError(Error):
    """Raised when the gate is missing a consumer secret or is misconfigured."""


class IdentityResolutionError(Error):
    """
    Raised when a claimed identifier cannot be resolved to an identity server.
    """

    def __init__(self, detail: str) -> None:
        """
        Create a new `IdentityResolutionError` from the consumer's error detail.
        """
        super().__init__(detail)
        self.detail = detail

    def diagnostics(self) -> str:
        """Returns diagnostics for the error."""
        return f"""\
        Unable to find an OpenID server for the claimed identifier.

        Check that the identifier is spelled correctly and that it
        advertises an OpenID provider.

        Additional context:

        {self.detail}
        """


class IdentityVerificationError(Error):
    """
    Raised when a provider callback carries neither a setup URL, a
    cancellation, nor a verifiable identity.
    """

    def __init__(self, detail: str) -> None:
        """
        Create a new `IdentityVerificationError` from the consumer's error detail.
        """
        super().__init__(f"Error validating identity: {detail}")
        self.detail = detail


class ReturnToSignatureError(Error):
    """
    Raised when the signed timestamp on a return-to URL is missing,
    forged, or outside its validity window.
    """

    def __init__(self, reason: str) -> None:
        """
        Create a new `ReturnToSignatureError`. `reason` is one of
        `time_bad_sig`, `time_expired` or `time_in_future`.
        """
        super().__init__(reason)
        self.reason = reason
