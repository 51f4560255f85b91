# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Shared test fakes for reactorkit.

Provides reusable fake implementations of the VCS, Workspace, Resolver
and Builder protocols so that individual test modules don't need to
duplicate boilerplate classes.

Usage::

    from tests._fakes import OK, FakeBuilder, FakeResolver, FakeVCS

    vcs = FakeVCS(tags={'core-1.0.3'}, changed_paths={'core'})
    resolver = FakeResolver()
    builder = FakeBuilder(ok=False, resolver=resolver, publish_count=1)
"""

from tests._fakes._builder import FakeBuilder as FakeBuilder
from tests._fakes._resolver import FakeResolver as FakeResolver
from tests._fakes._vcs import OK as OK, FakeVCS as FakeVCS
from tests._fakes._workspace import ROOT as ROOT, FakeWorkspace as FakeWorkspace, make_module as make_module

__all__ = [
    'OK',
    'ROOT',
    'FakeBuilder',
    'FakeResolver',
    'FakeVCS',
    'FakeWorkspace',
    'make_module',
]
