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
The `openid_gate` Python APIs.

For command-line usage of `openid-gate`, refer to the
[README](https://github.com/openid-gate/openid-gate).

Otherwise, here are some quick starting points:

* `openid_gate.gate`: the per-request authentication dispatcher
* `openid_gate.wsgi`: binding the dispatcher into a WSGI application
* `openid_gate.secret`: consumer secrets for signing return-to URLs
"""

__version__ = "0.1.0"
