#
# coding: utf-8
# Copyright (c) 2018 DATADVANCE
#
# Permission is hereby granted, free of charge, to any person obtaining
# a copy of this software and associated documentation files (the
# "Software"), to deal in the Software without restriction, including
# without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to
# permit persons to whom the Software is furnished to do so, subject to
# the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT.
# IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY
# CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT,
# TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE
# SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""
Module provides `EurekaClient` querying Eureka discovery registry.
"""

import asyncio
import logging

import aiohttp


class EurekaClient(object):
    """Client of the Eureka REST API.

    Client has synchronous interface expected by
    `wait_until_registered`: method `get_instances` blocks until the
    registry responds. Requests are performed by `aiohttp` in the event
    loop owned by the client, so the client must not be used from
    inside a running event loop. Call `close` when client is no longer
    needed.
    """

    # Registry address services are configured with by default.
    DEFAULT_ZONE = 'http://localhost:8761/eureka/'
    # Request timeout in seconds.
    TIMEOUT = 10

    def __init__(self, base_url=DEFAULT_ZONE, timeout=TIMEOUT, name=None):
        """Constructs `EurekaClient` instance.

        Args:
            base_url: Registry URL, e.g. 'http://localhost:8761/eureka/'.
            timeout: Total timeout of a single request in seconds.
            name: Name of the client instance, used for logging.
        """
        self._base_url = str(base_url).rstrip('/')
        self._timeout = float(timeout)
        self._loop = asyncio.new_event_loop()
        self._logger = logging.getLogger(
            name if name is not None else EurekaClient.__name__
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def base_url(self):
        return self._base_url

    def get_instances(self, application_name):
        """List instances registered under the application name.

        Returns:
            List of dicts with instance information as reported by the
            registry. Empty list if there are no such instances or the
            registry is not reachable, times out or replies with an
            error.
        """
        return self._loop.run_until_complete(
            self.fetch_instances(application_name)
        )

    async def fetch_instances(self, application_name):
        """Coroutine version of `get_instances`."""
        # Eureka keeps application names in upper case.
        url = f'{self._base_url}/apps/{application_name.upper()}'
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(
                        url, headers={'Accept': 'application/json'}
                ) as response:
                    if response.status == 404:
                        self._logger.debug('%s is unknown to %s',
                                           application_name, self._base_url)
                        return []
                    response.raise_for_status()
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            # Registry which is down, hung or still starting knows
            # nothing about the application yet.
            self._logger.debug('Registry %s did not answer: %s %s',
                               self._base_url, type(e), e)
            return []

        instances = (data or {}).get('application', {}).get('instance', [])
        # Eureka sends a single object instead of a list with one item.
        if isinstance(instances, dict):
            instances = [instances]
        return list(instances)

    def close(self):
        if not self._loop.is_closed():
            self._loop.close()
