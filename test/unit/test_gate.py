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

import logging

import pretend
import pytest

from openid_gate.config import GateConfig
from openid_gate.consumer import OpenIDConsumerFactory
from openid_gate.errors import (
    ConfigurationError,
    IdentityResolutionError,
    IdentityVerificationError,
)
from openid_gate.gate import (
    Authenticated,
    AuthenticationGate,
    RedirectTo,
    Unauthenticated,
)
from openid_gate.secret import insecure_identity_secret

CHECK_URL = "https://provider.example/check?x=1"


@pytest.fixture
def claimed():
    return pretend.stub(
        check_url=pretend.call_recorder(lambda return_to, trust_root: CHECK_URL)
    )


class TestAuthenticationGate:
    def test_requires_secret(self, factory_for, stub_consumer):
        with pytest.raises(ConfigurationError, match="consumer secret is required"):
            AuthenticationGate(None, consumer_factory=factory_for(stub_consumer()))

    def test_insecure_secret_warns(self, caplog, factory_for, stub_consumer):
        with caplog.at_level(logging.WARNING, logger="openid_gate"):
            AuthenticationGate(
                insecure_identity_secret,
                consumer_factory=factory_for(stub_consumer()),
            )

        assert "not protected against replay" in caplog.text

    def test_default_consumer_factory(self, monkeypatch, secret):
        monkeypatch.setattr(
            "openid_gate.consumer.fetch.install", pretend.call_recorder(lambda f: None)
        )

        gate = AuthenticationGate(secret)

        assert isinstance(gate._consumer_factory, OpenIDConsumerFactory)
        assert gate.config == GateConfig()

    @pytest.mark.parametrize(
        ("base", "expected"),
        [
            (
                "https://app.example/login",
                "https://app.example/login?openid-check=1",
            ),
            (
                "https://app.example/login?next=home",
                "https://app.example/login?next=home&openid-check=1",
            ),
        ],
    )
    def test_return_to(
        self, secret, factory_for, stub_consumer, incoming, base, expected
    ):
        gate = AuthenticationGate(
            secret, consumer_factory=factory_for(stub_consumer())
        )
        assert gate.return_to(incoming(base=base)) == expected


class TestEvaluateNoParameters:
    @pytest.mark.parametrize(
        "params",
        [
            {},
            {"unrelated": "value"},
            {"claimed_uri": ""},
            {"openid-check": ""},
            {"openid-check": "0"},
            {"claimed_uri": "", "openid-check": ""},
        ],
    )
    def test_unauthenticated(
        self, secret, factory_for, stub_consumer, incoming, params
    ):
        factory = factory_for(stub_consumer())
        gate = AuthenticationGate(secret, consumer_factory=factory)

        assert gate.evaluate(incoming(params)) == Unauthenticated()
        # No consumer means no network traffic and no other side effects.
        assert factory.calls == []


class TestEvaluateClaimedIdentifier:
    def test_redirects_to_check_url(
        self, secret, factory_for, stub_consumer, incoming, claimed
    ):
        consumer = stub_consumer(claimed=claimed)
        factory = factory_for(consumer)
        gate = AuthenticationGate(secret, consumer_factory=factory)
        request = incoming({"claimed_uri": "https://example.com/alice"})

        result = gate.evaluate(request)

        assert result == RedirectTo(CHECK_URL)
        assert factory.calls == [pretend.call(request, secret)]
        assert consumer.claimed_identity.calls == [
            pretend.call("https://example.com/alice")
        ]
        assert claimed.check_url.calls == [
            pretend.call(
                return_to="https://app.example/login?openid-check=1",
                trust_root="https://app.example/login",
            )
        ]

    def test_claimed_identifier_takes_precedence(
        self, secret, factory_for, stub_consumer, incoming, claimed
    ):
        consumer = stub_consumer(claimed=claimed)
        gate = AuthenticationGate(secret, consumer_factory=factory_for(consumer))

        result = gate.evaluate(
            incoming({"claimed_uri": "https://example.com/alice", "openid-check": "1"})
        )

        assert isinstance(result, RedirectTo)
        assert consumer.user_setup_url.calls == []
        assert consumer.verified_identity.calls == []

    def test_resolution_failure(self, secret, factory_for, stub_consumer, incoming):
        consumer = stub_consumer(claimed=None, err="no_identity_server: nope")
        gate = AuthenticationGate(secret, consumer_factory=factory_for(consumer))

        with pytest.raises(IdentityResolutionError) as exc_info:
            gate.evaluate(incoming({"claimed_uri": "https://example.com/alice"}))

        assert exc_info.value.detail == "no_identity_server: nope"
        assert "no_identity_server: nope" in exc_info.value.diagnostics()

    def test_custom_parameter_names(
        self, secret, factory_for, stub_consumer, incoming, claimed
    ):
        config = GateConfig(claimed_param="openid_url", check_param="login-check")
        consumer = stub_consumer(claimed=claimed)
        gate = AuthenticationGate(
            secret, consumer_factory=factory_for(consumer), config=config
        )

        assert gate.evaluate(incoming({"claimed_uri": "ignored"})) == Unauthenticated()
        assert gate.evaluate(incoming({"openid_url": "https://example.com/alice"})) == (
            RedirectTo(CHECK_URL)
        )
        assert claimed.check_url.calls == [
            pretend.call(
                return_to="https://app.example/login?login-check=1",
                trust_root="https://app.example/login",
            )
        ]


class TestEvaluateProviderCallback:
    @pytest.mark.parametrize("marker", ["1", "true", "yes"])
    def test_authenticated(
        self, secret, factory_for, stub_consumer, incoming, alice, marker
    ):
        consumer = stub_consumer(verified=alice)
        gate = AuthenticationGate(secret, consumer_factory=factory_for(consumer))

        result = gate.evaluate(
            incoming({"openid-check": marker, "openid.mode": "id_res"})
        )

        assert result == Authenticated(alice)
        assert result.identity.uri == "https://example.com/alice"
        assert len(consumer.user_setup_url.calls) == 1
        assert len(consumer.user_cancel.calls) == 1
        assert len(consumer.verified_identity.calls) == 1

    def test_setup_needed(self, secret, factory_for, stub_consumer, incoming, alice):
        consumer = stub_consumer(
            setup_url="https://provider.example/setup", verified=alice
        )
        gate = AuthenticationGate(secret, consumer_factory=factory_for(consumer))

        result = gate.evaluate(incoming({"openid-check": "1"}))

        assert result == RedirectTo("https://provider.example/setup")
        assert consumer.user_cancel.calls == []
        assert consumer.verified_identity.calls == []

    def test_cancelled(self, secret, factory_for, stub_consumer, incoming, alice):
        consumer = stub_consumer(cancel=True, verified=alice)
        gate = AuthenticationGate(secret, consumer_factory=factory_for(consumer))

        result = gate.evaluate(incoming({"openid-check": "1"}))

        assert result == Unauthenticated()
        assert consumer.verified_identity.calls == []

    def test_verification_failure(self, secret, factory_for, stub_consumer, incoming):
        consumer = stub_consumer(err="time_bad_sig")
        gate = AuthenticationGate(secret, consumer_factory=factory_for(consumer))

        with pytest.raises(
            IdentityVerificationError, match="Error validating identity: time_bad_sig"
        ) as exc_info:
            gate.evaluate(incoming({"openid-check": "1"}))

        assert exc_info.value.detail == "time_bad_sig"
