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

"""Maven repository resolver for reactorkit.

The :class:`MavenRepositoryResolver` implements the
:class:`~reactorkit.backends.resolver.Resolver` protocol by issuing an
HTTP ``HEAD`` for the artifact's main file in a Maven 2 layout
repository::

    {base_url}/com/example/core/1.2/core-1.2.jar
               └── groupId ──┘ └a─┘ └v┘ └── artifactId-version.ext

Packaging to file extension::

    pom           → .pom
    war, ear, rar → same as packaging
    everything else (jar, bundle, maven-plugin, ...) → .jar
"""

from __future__ import annotations

import asyncio

import httpx

from reactorkit.errors import E, ReactorKitError
from reactorkit.logging import get_logger
from reactorkit.net import DEFAULT_POOL_SIZE, DEFAULT_TIMEOUT, http_client, request_with_retry

log = get_logger('reactorkit.backends.resolver.maven_repo')

_EXTENSION_PACKAGINGS = frozenset({'pom', 'war', 'ear', 'rar'})

# Only these statuses mean "not published". Anything else (401, 403, 405)
# says nothing about the artifact.
_NOT_FOUND_STATUSES = frozenset({404, 410})


def artifact_path(group_id: str, artifact_id: str, version: str, packaging: str) -> str:
    """Return the repository-relative path of an artifact's main file.

    Examples::

        >>> artifact_path('com.example', 'core', '1.2', 'jar')
        'com/example/core/1.2/core-1.2.jar'
        >>> artifact_path('com.example', 'parent', '1.2', 'pom')
        'com/example/parent/1.2/parent-1.2.pom'
    """
    ext = packaging if packaging in _EXTENSION_PACKAGINGS else 'jar'
    group_path = group_id.replace('.', '/')
    return f'{group_path}/{artifact_id}/{version}/{artifact_id}-{version}.{ext}'


class MavenRepositoryResolver:
    """HTTP :class:`~reactorkit.backends.resolver.Resolver` implementation.

    Args:
        base_url: Root of the Maven 2 layout repository that the release
            build deploys to.
        attempts: Probes before concluding "not resolvable". Values
            above 1 give a deploy time to propagate.
        interval: Seconds between probes.
        pool_size: HTTP connection pool size.
        timeout: HTTP request timeout in seconds.
    """

    DEFAULT_BASE_URL: str = 'https://repo1.maven.org/maven2'

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        attempts: int = 1,
        interval: float = 5.0,
        pool_size: int = DEFAULT_POOL_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize with the repository URL and probe settings."""
        self._base_url = base_url.rstrip('/')
        self._attempts = max(1, attempts)
        self._interval = max(0.0, interval)
        self._pool_size = pool_size
        self._timeout = timeout

    async def is_resolvable(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        packaging: str,
    ) -> bool:
        """Return ``True`` once the artifact answers ``HEAD`` with 2xx.

        Raises:
            ReactorKitError: If the repository cannot be reached or answers
                with a status other than 2xx, 404 or 410.
        """
        url = f'{self._base_url}/{artifact_path(group_id, artifact_id, version, packaging)}'

        async with http_client(pool_size=self._pool_size, timeout=self._timeout) as client:
            for attempt in range(1, self._attempts + 1):
                try:
                    response = await request_with_retry(client, 'HEAD', url)
                except httpx.HTTPError as exc:
                    raise ReactorKitError(
                        E.RESOLVER_UNAVAILABLE,
                        f'Could not query {self._base_url} for {group_id}:{artifact_id}:{version}',
                        details=[str(exc)],
                    ) from exc
                if response.is_success:
                    log.debug('artifact_resolved', artifact=f'{group_id}:{artifact_id}', version=version)
                    return True
                if response.status_code not in _NOT_FOUND_STATUSES:
                    raise ReactorKitError(
                        E.RESOLVER_UNAVAILABLE,
                        f'{self._base_url} answered HTTP {response.status_code} for {group_id}:{artifact_id}:{version}',
                        hint='Check the repository URL and credentials.',
                        details=[f'HEAD {url}'],
                    )
                if attempt < self._attempts:
                    log.debug(
                        'artifact_not_yet_resolvable',
                        artifact=f'{group_id}:{artifact_id}',
                        version=version,
                        attempt=attempt,
                        wait=self._interval,
                    )
                    await asyncio.sleep(self._interval)

        log.info('artifact_not_resolvable', artifact=f'{group_id}:{artifact_id}', version=version, url=url)
        return False


__all__ = [
    'MavenRepositoryResolver',
    'artifact_path',
]
