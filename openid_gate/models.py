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
Common models shared between the gate and its consumer collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, StrictStr, field_validator


class VerifiedIdentity(BaseModel):
    """
    Represents an identity asserted by an OpenID provider and verified
    by the consumer.

    This is the only value the gate hands back to its caller on success;
    looking up or provisioning a user account from it is up to the caller.
    """

    model_config = ConfigDict(frozen=True)

    uri: StrictStr
    """
    The verified claimed identifier.
    """

    display: Optional[StrictStr] = None
    """
    A human-friendly rendering of `uri`, as suggested by the provider.
    """

    server_url: Optional[StrictStr] = None
    """
    The provider endpoint that made the assertion.
    """

    @field_validator("uri")
    def _uri_nonempty(cls, v: str) -> str:
        if not v:
            raise ValueError("verified identity has an empty identifier")
        return v

    def __str__(self) -> str:
        """
        Returns the display identifier, falling back on the claimed identifier.
        """
        return self.display or self.uri


@dataclass(frozen=True)
class IncomingRequest:
    """
    A read-only view of an incoming HTTP request, as far as the gate cares.
    """

    params: Mapping[str, str]
    """
    The request's query and form parameters.
    """

    base: str
    """
    The application's base URI: the URL the login form posts to, without
    any query string. Providers redirect back here.
    """

    def param(self, name: str) -> Optional[str]:
        """
        Returns the parameter `name`, or `None` if it wasn't supplied.
        """
        return self.params.get(name)
