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

"""Pluggable collaborators for the release workflow.

The workflow core never shells out or opens a socket itself. It talks
to four protocols, each with one production implementation:

=============  ==========================================  ==============================
Protocol       Responsibility                              Default implementation
=============  ==========================================  ==============================
``VCS``        clean check, tags, pushes, file revert      ``GitCLIBackend`` (``git``)
``Workspace``  load the module graph, rewrite ``pom.xml``  ``MavenWorkspace``
``Resolver``   "was this artifact published?"              ``MavenRepositoryResolver``
``Builder``    run the release build                       ``MavenBuilder`` (``mvn``)
=============  ==========================================  ==============================

Tests substitute fakes for all four.
"""
