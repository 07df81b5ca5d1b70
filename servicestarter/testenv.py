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
Module provides `IntegrationTestEnvironment`: everything services
started during one test run share.
"""

import logging
import os
import shutil

from .artifacts import LocalRepositoryLocator
from .discovery import EurekaClient
from .pool import AllocationPool


class ApiFactory(object):
    """Factory of typed clients.

    Client type is called with the base URI of the service, override
    `create` to build clients some other way.
    """

    def create(self, api_type, base_uri):
        return api_type(base_uri)


class IntegrationTestEnvironment(object):
    """Shared environment of a test run.

    Environment owns the `AllocationPool` and knows where to take the
    `java` runtime and the artifacts from. It is created once per test
    run and passed to every `Microservice`.

    Example:
      ```
      with IntegrationTestEnvironment() as test_env:
          with Microservice(LedgerApi, 'ledger', '0.1.0', test_env) as svc:
              assert svc.wait_until_registered()
              svc.api().create_account(...)
      ```
    """

    # Address of the message broker services are configured with.
    BROKER_URL = 'tcp://localhost:61616'
    # Address of the discovery registry services are configured with.
    DISCOVERY_ZONE = EurekaClient.DEFAULT_ZONE
    # Environment variable with the local repository path.
    REPOSITORY_ENV_VAR = 'SERVICESTARTER_REPOSITORY'
    # Repository path used when environment variable is not set.
    REPOSITORY_DEFAULT = os.path.join('~', '.m2', 'repository')

    def __init__(self, pool=None, runtime=None, locator=None,
                 api_factory=None, discovery_client=None, name=None):
        """Constructs `IntegrationTestEnvironment` instance.

        Args:
            pool: Instance of `AllocationPool`, new one is created if
                `None`.
            runtime: Path to the `java` executable, found automatically
                if `None`.
            locator: Object with method
                `resolve(group, artifact, packaging, version)`,
                `LocalRepositoryLocator` by default.
            api_factory: Object with method `create(api_type,
                base_uri)`, `ApiFactory` by default.
            discovery_client: Object with method `get_instances(name)`
                used to check services registration. `None` means
                registration is not checked.
            name: Name of the environment instance, used for logging.
        """
        self._logger = logging.getLogger(
            name if name is not None else IntegrationTestEnvironment.__name__
        )
        self._pool = pool if pool is not None else AllocationPool()
        self._runtime = runtime if runtime is not None else self.find_java()
        self._locator = (locator if locator is not None
                         else LocalRepositoryLocator(self.repository_root()))
        self._api_factory = (api_factory if api_factory is not None
                             else ApiFactory())
        self._discovery_client = discovery_client
        self._applications = []
        self._logger.debug('Runtime: %s', self._runtime)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @staticmethod
    def find_java():
        """Path to `java`: from `JAVA_HOME` if it is set, from `PATH`
           otherwise."""
        java_home = os.environ.get('JAVA_HOME')
        if java_home:
            return os.path.join(java_home, 'bin', 'java')
        return shutil.which('java') or 'java'

    @classmethod
    def repository_root(cls):
        return os.path.expanduser(
            os.environ.get(cls.REPOSITORY_ENV_VAR, cls.REPOSITORY_DEFAULT)
        )

    @property
    def pool(self):
        return self._pool

    @property
    def runtime(self):
        return self._runtime

    @property
    def locator(self):
        return self._locator

    @property
    def api_factory(self):
        return self._api_factory

    @property
    def discovery_client(self):
        return self._discovery_client

    @property
    def applications(self):
        """Names of the applications added with `add_application`."""
        return list(self._applications)

    @property
    def key_pair(self):
        return self._pool.key_pair

    def fresh_port(self):
        return self._pool.fresh_port()

    def fresh_debug_port(self):
        return self._pool.fresh_debug_port()

    def add_application(self, application_name):
        """Remember application which tenants must be initialized in."""
        self._applications.append(str(application_name))

    def close(self):
        self._logger.info('Closing test environment')
        self._pool.close()
        if self._discovery_client is not None and hasattr(
                self._discovery_client, 'close'):
            self._discovery_client.close()
