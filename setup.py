#!/usr/bin/env python3
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

import importlib

from setuptools import find_packages, setup

version = importlib.import_module("openid_gate")

with open("./README.md") as f:
    long_description = f.read()

setup(
    name="openid-gate",
    version=version.__version__,
    license="Apache-2.0",
    author="openid-gate Authors",
    description="A redirect-driven OpenID login gate for WSGI applications",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/openid-gate/openid-gate",
    packages=find_packages(exclude=["test", "test.*"]),
    entry_points={
        "console_scripts": [
            "openid-gate = openid_gate._cli:main",
        ],
        "paste.filter_app_factory": [
            "gate = openid_gate.wsgi:make_middleware",
        ],
    },
    platforms="any",
    python_requires=">=3.8",
    install_requires=[
        "cryptography",
        "legacy-cgi; python_version >= '3.13'",
        "Paste>=3",
        "pydantic>=2",
        "python3-openid",
        "requests",
        "rich",
    ],
    extras_require={
        "dev": [
            "build",
            "flake8",
            "black",
            "isort",
            "pytest",
            "pytest-cov",
            "pretend",
            "coverage[toml]",
            "interrogate",
            "mypy",
            "types-requests",
        ]
    },
    classifiers=[
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
        "Topic :: Security",
    ],
)
