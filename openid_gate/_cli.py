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

import argparse
import html
import logging
import os
import sys
from typing import Any, Iterable, NoReturn

from paste.httpserver import serve
from paste.request import construct_url
from rich.console import Console
from rich.logging import RichHandler

from openid_gate import __version__
from openid_gate.config import GateConfig
from openid_gate.errors import Error
from openid_gate.gate import AuthenticationGate, IncomingRequest, RedirectTo
from openid_gate.secret import (
    ConsumerSecret,
    insecure_identity_secret,
    static_secret,
)
from openid_gate.wsgi import GateMiddleware, error_from_environ, identity_from_environ

_console = Console(file=sys.stderr)
logging.basicConfig(
    format="%(message)s", datefmt="[%X]", handlers=[RichHandler(console=_console)]
)
_logger = logging.getLogger(__name__)

# NOTE: We configure the top package logger, rather than the root logger,
# to avoid overly verbose logging in third-party code by default.
_package_logger = logging.getLogger("openid_gate")
_package_logger.setLevel(os.environ.get("OPENID_GATE_LOGLEVEL", "INFO").upper())

_DEMO_PAGE = """\
<html>
  <head><title>openid-gate</title></head>
  <body>
    <h1>openid-gate demo</h1>
    {message}
    <form method="post" action="{action}">
      Identity&nbsp;URL:
      <input type="text" name="{claimed_param}" value="" />
      <input type="submit" value="Log in" />
    </form>
  </body>
</html>
"""


def _invalid_arguments(args: argparse.Namespace, message: str) -> NoReturn:
    """
    An `argparse` helper that fixes up the type hints on our use of
    `ArgumentParser.error`.
    """
    args._parser.error(message)
    raise ValueError("unreachable")


def _parser() -> argparse.ArgumentParser:
    # Arguments in parent_parser can be used for both commands and subcommands
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="run with additional debug logging; supply multiple times to increase verbosity",
    )

    parser = argparse.ArgumentParser(
        prog="openid-gate",
        description="a redirect-driven OpenID login gate for web applications",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        parents=[parent_parser],
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"openid-gate {__version__}"
    )

    secret_options = parser.add_mutually_exclusive_group()
    secret_options.add_argument(
        "--secret",
        metavar="SECRET",
        type=str,
        default=os.getenv("OPENID_GATE_SECRET"),
        help="The consumer secret used to sign return-to URLs",
    )
    secret_options.add_argument(
        "--insecure-identity-secret",
        action="store_true",
        help=(
            "Sign return-to URLs with the timestamp itself; "
            "offers no replay protection, for testing only"
        ),
    )

    subcommands = parser.add_subparsers(
        required=True,
        dest="subcommand",
        metavar="COMMAND",
        help="the operation to perform",
    )

    # `openid-gate check-url`
    check_url = subcommands.add_parser(
        "check-url",
        help="resolve a claimed identifier and print its provider check URL",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        parents=[parent_parser],
    )
    check_url.add_argument(
        "claimed_uri",
        metavar="CLAIMED_URI",
        type=str,
        help="The claimed identifier to resolve",
    )
    check_url.add_argument(
        "--base",
        metavar="URL",
        type=str,
        required=True,
        help="The application's base URI, used as the trust root",
    )

    # `openid-gate serve`
    serve = subcommands.add_parser(
        "serve",
        help="serve a demo login page behind the gate",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        parents=[parent_parser],
    )
    serve.add_argument(
        "--host",
        metavar="HOST",
        type=str,
        default="127.0.0.1",
        help="The interface to listen on",
    )
    serve.add_argument(
        "--port",
        metavar="PORT",
        type=int,
        default=8000,
        help="The port to listen on",
    )
    serve.add_argument(
        "--base",
        metavar="URL",
        type=str,
        default=None,
        help="Pin the application's base URI instead of reconstructing it per request",
    )

    return parser


def main(args: list[str] | None = None) -> None:
    if not args:
        args = sys.argv[1:]

    parser = _parser()
    args = parser.parse_args(args)

    # Configure logging upfront, so that we don't miss anything.
    if args.verbose >= 1:
        _package_logger.setLevel("DEBUG")
    if args.verbose >= 2:
        logging.getLogger().setLevel("DEBUG")

    _logger.debug(f"parsed arguments {args}")

    # Stuff the parser back into our namespace, so that we can use it for
    # error handling later.
    args._parser = parser

    try:
        if args.subcommand == "check-url":
            _check_url(args)
        elif args.subcommand == "serve":
            _serve(args)
        else:
            _invalid_arguments(args, f"Unknown subcommand: {args.subcommand}")
    except Error as e:
        e.log_and_exit(_logger, args.verbose >= 1)


def _consumer_secret(args: argparse.Namespace) -> ConsumerSecret:
    if args.insecure_identity_secret:
        return insecure_identity_secret
    if not args.secret:
        _invalid_arguments(
            args,
            "No consumer secret supplied: pass --secret or set OPENID_GATE_SECRET",
        )
    return static_secret(args.secret)


def _gate(args: argparse.Namespace) -> AuthenticationGate:
    return AuthenticationGate(_consumer_secret(args), config=GateConfig.from_env())


def _check_url(args: argparse.Namespace) -> None:
    gate = _gate(args)

    request = IncomingRequest(
        params={gate.config.claimed_param: args.claimed_uri}, base=args.base
    )
    result = gate.evaluate(request)

    # An empty claimed identifier leaves the gate unauthenticated.
    if not isinstance(result, RedirectTo):
        _invalid_arguments(args, "No claimed identifier supplied")

    print(result.url)


def _demo_app(config: GateConfig) -> Any:
    def app(environ: dict[str, Any], start_response: Any) -> Iterable[bytes]:
        identity = identity_from_environ(environ, config.identity_key)
        error = error_from_environ(environ, config.error_key)

        message = ""
        if identity is not None:
            message = f"<p>Logged in as <b>{html.escape(str(identity))}</b>.</p>"
        elif error is not None:
            message = f"<p>Login failed: {html.escape(str(error))}</p>"

        body = _DEMO_PAGE.format(
            message=message,
            action=html.escape(
                construct_url(environ, with_query_string=False), quote=True
            ),
            claimed_param=html.escape(config.claimed_param, quote=True),
        )
        start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
        return [body.encode()]

    return app


def _serve(args: argparse.Namespace) -> None:
    gate = _gate(args)
    app = GateMiddleware(_demo_app(gate.config), gate, base=args.base)

    server = serve(app, host=args.host, port=args.port, start_loop=False)
    _logger.info(f"serving on http://{args.host}:{args.port}/")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        _logger.info("shutting down")
    finally:
        server.server_close()
