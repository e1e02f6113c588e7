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
Gate configuration.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    PositiveFloat,
    PositiveInt,
    StrictStr,
    ValidationError,
    field_validator,
)

from openid_gate.errors import ConfigurationError

_ENV_PREFIX = "OPENID_GATE_"


class GateConfig(BaseModel):
    """
    Tunables for `AuthenticationGate` and its WSGI binding.

    The defaults match the parameter names used by the login form and the
    provider callback; most applications never need to change them.
    """

    model_config = ConfigDict(frozen=True)

    claimed_param: StrictStr = "claimed_uri"
    check_param: StrictStr = "openid-check"
    identity_key: StrictStr = "openid_gate.identity"
    error_key: StrictStr = "openid_gate.error"

    max_signature_age: PositiveInt = 600
    """
    How old (in seconds) a signed return-to timestamp may be.
    """

    max_clock_skew: PositiveInt = 3600
    """
    How far (in seconds) a signed return-to timestamp may lie in the future.
    """

    fetch_timeout: PositiveFloat = 30.0

    @field_validator("claimed_param", "check_param", "identity_key", "error_key")
    def _name_nonempty(cls, v: str) -> str:
        if not v:
            raise ValueError("parameter and key names must not be empty")
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> GateConfig:
        """
        Returns a `GateConfig` built from `OPENID_GATE_*` environment variables,
        e.g. `OPENID_GATE_CHECK_PARAM` or `OPENID_GATE_FETCH_TIMEOUT`.

        Unset variables keep their defaults.
        """
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = environ.get(f"{_ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw

        try:
            # NOTE: Environment values are always strings, so numeric
            # fields rely on pydantic's lax coercion here.
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid gate configuration: {exc}") from exc
