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

"""Release automation for multi-module Maven reactors.

Plans which modules need a release, validates tag uniqueness, stamps
release versions into ``pom.xml`` files, tags and pushes, runs the
build, and compensates for partial failures by deleting the tags of
modules whose artifacts never reached the repository.
"""

__version__ = '0.1.0'

__all__ = [
    '__version__',
]
