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
Module provides `Microservice` class: a handle of a service started for
integration tests.
"""

import logging

from .environment import RuntimeEnvironment
from .errors import AlreadyStartedError, NotStartedError
from .readiness import wait_until_registered
from .supervisor import ProcessSupervisor


class Microservice(object):
    """Service started from its artifact for integration tests.

    Instance is configured completely by the constructor arguments,
    then `start` launches the service process and `kill` terminates it.
    Instance is not reusable: it stands for exactly one launch.

    Service is configured with the port and the key pair taken from the
    test environment, and with settings making it register in Eureka
    quickly. Additional properties given to the constructor (or set by
    `environment.add_properties` before start) override these defaults.

    Being used as a context manager `Microservice` starts the service
    on enter and stops it on exit, so the process is terminated on
    every path, including failed start.

    Example:
      ```
      class LedgerApi:
          application_name = 'ledger-v1'
          def __init__(self, base_uri):
              ...

      ledger = Microservice(LedgerApi, 'ledger', '0.1.0', test_env,
                            properties={'logging.level.root': 'DEBUG'})
      with ledger:
          assert ledger.wait_until_registered()
          ledger.api().create_ledger(...)
      ```
    """

    # Default waiting budget (seconds) for the service registration.
    MAX_WAIT_DEFAULT = 150
    # Group the artifacts are published under is this prefix followed
    # by the artifact name.
    GROUP_PREFIX = 'org.apache.fineract.cn.'
    # Artifact id of the runnable jar.
    ARTIFACT_ID = 'service-boot'
    # Packaging of the runnable artifact.
    PACKAGING = 'jar'

    def __init__(self, api_type, artifact_name, artifact_version, test_env,
                 name=None, group=None, properties=None, debug_port=None,
                 debug_suspend=False, max_wait=MAX_WAIT_DEFAULT):
        """Constructs `Microservice` instance.

        Args:
            api_type: Type of the client, instantiated by `api()`.
            artifact_name: Name of the service artifact, e.g. 'ledger'.
            artifact_version: Version of the artifact.
            test_env: Instance of `IntegrationTestEnvironment`.
            name: Application name the service registers under.
                Defaults to `api_type.application_name`.
            group: Artifact group, defaults to `GROUP_PREFIX` followed
                by the artifact name.
            properties: Mapping with properties overriding defaults.
            debug_port: Port to attach remote debugger to. If `True`
                the port is allocated from the test environment. If
                `None` service runs without debugging agent.
            debug_suspend: Whether service waits for a debugger to
                attach before it starts.
            max_wait: Budget (seconds) to wait for registration.
        Raises:
            AssertionError: Arguments contain mistakes.
        """
        if name is None:
            name = getattr(api_type, 'application_name', None)
        assert name, ('Application name is not given and `api_type` has no '
                      '`application_name` attribute!')
        assert artifact_name, 'Empty artifact name!'
        assert artifact_version, 'Empty artifact version!'
        assert max_wait >= 0, 'Registration wait budget is negative!'

        self._api_type = api_type
        self._name = str(name)
        self._artifact_name = str(artifact_name)
        self._artifact_version = str(artifact_version)
        self._group = (str(group) if group is not None
                       else self.GROUP_PREFIX + self._artifact_name)
        self._test_env = test_env
        self._max_wait = max_wait
        self._api = None
        self._logger = logging.getLogger(
            '{}[{}]'.format(Microservice.__name__, self._name)
        )

        if debug_port is True:
            debug_port = test_env.fresh_debug_port()
        self._debugging_port = (int(debug_port) if debug_port is not None
                                else None)

        self._environment = RuntimeEnvironment(self._name)
        env = self._environment
        env.set_property(RuntimeEnvironment.SERVER_PORT_PROPERTY,
                         test_env.fresh_port())
        env.set_key_pair(test_env.key_pair)
        env.set_property('eureka.client.serviceUrl.defaultZone',
                         test_env.DISCOVERY_ZONE)
        env.set_property(
            RuntimeEnvironment.SPRING_CLOUD_DISCOVERY_ENABLED_PROPERTY, 'true'
        )
        env.set_property('eureka.instance.hostname', 'localhost')
        env.set_property('eureka.client.fetchRegistry', 'true')
        env.set_property('eureka.registration.enabled', 'true')
        # Speed up registration for test purposes.
        env.set_property('eureka.instance.leaseRenewalIntervalInSeconds', '1')
        env.set_property(
            'eureka.client.initialInstanceInfoReplicationIntervalSeconds', '0'
        )
        env.set_property(
            'eureka.client.instanceInfoReplicationIntervalSeconds', '1'
        )
        env.set_property('activemq.brokerUrl', test_env.BROKER_URL)
        env.set_property(RuntimeEnvironment.RIBBON_USES_EUREKA_PROPERTY,
                         'true')
        if properties is not None:
            env.add_properties(properties)

        self._supervisor = ProcessSupervisor(
            self._name, test_env.runtime, self._environment,
            debug_port=self._debugging_port, debug_suspend=debug_suspend
        )

    def __enter__(self):
        try:
            self.start()
        except AlreadyStartedError:
            # Process belongs to the earlier `start`, leave it alone.
            raise
        except BaseException:
            self.stop()
            raise
        return self

    def __exit__(self, *exc_info):
        self.stop()

    def __str__(self):
        result = f'{self._name} address:{self.uri()}'
        if self._debugging_port is not None:
            result += f', debuggingPort: {self._debugging_port}'
        return result

    @property
    def environment(self):
        """`RuntimeEnvironment` of the service."""
        return self._environment

    @property
    def supervisor(self):
        """`ProcessSupervisor` owning the service process."""
        return self._supervisor

    @property
    def max_wait(self):
        return self._max_wait

    def name(self):
        return self._name

    def uri(self):
        return self._environment.server_uri()

    def debugging_port(self):
        return self._debugging_port

    def api(self):
        """Client of the service, created on the first call."""
        if self._api is None:
            self._api = self._test_env.api_factory.create(self._api_type,
                                                          self.uri())
        return self._api

    def start(self):
        """Resolve service artifact and start the service process.

        Method returns as soon as process is spawned, use
        `wait_until_registered` to wait the service to become ready.

        Raises:
            ArtifactResolutionError: Artifact is not found.
            ProcessStartError: Process did not start.
        """
        artifact_path = self._test_env.locator.resolve(
            self._group, self.ARTIFACT_ID, self.PACKAGING,
            self._artifact_version
        )
        self._logger.info('Starting %s', self)
        self._supervisor.start(artifact_path)

    def kill(self):
        """Terminate the service process and wait until it finishes.

        Returns:
            Exit code of the process.
        Raises:
            NotStartedError: Service was never started.
        """
        return self._supervisor.kill()

    def stop(self):
        """Best-effort `kill` for the teardown code.

        Never raises `NotStartedError` or `KeyboardInterrupt`, logs them
        instead.

        Returns:
            Exit code of the process, `None` if it is unknown.
        """
        try:
            return self.kill()
        except NotStartedError:
            self._logger.warning('%s was not started, nothing to stop.',
                                 self._name)
        except KeyboardInterrupt:
            self._logger.warning('Interrupt raised, but %s is already going '
                                 'down, so ignoring.', self._name)
        return None

    def wait_until_registered(self, discovery_client=None):
        """Wait until service registers in the discovery registry.

        Args:
            discovery_client: Object with method `get_instances(name)`,
                defaults to the one of the test environment.
        Returns:
            `True` if service is registered in `max_wait` seconds,
            `False` otherwise or if there is no discovery client.
        """
        if discovery_client is None:
            discovery_client = self._test_env.discovery_client
        return wait_until_registered(discovery_client, self._name,
                                     self._max_wait)


class InitializedMicroservice(Microservice):
    """Service with tenant initialized in it right after start.

    Tenant initialization is performed by the `tenant_initializer`
    callable which is invoked as
    `tenant_initializer(application_name, server_uri)` once the process
    is started. Start is not complete until it returns.
    """

    def __init__(self, api_type, artifact_name, artifact_version, test_env,
                 tenant_initializer, **kwargs):
        super().__init__(api_type, artifact_name, artifact_version,
                         test_env, **kwargs)
        assert callable(tenant_initializer), ('Tenant initializer is not '
                                              'callable!')
        self._tenant_initializer = tenant_initializer
        test_env.add_application(self._name)

    def start(self):
        super().start()
        self._logger.info('Initializing tenant in %s', self._name)
        self._tenant_initializer(self._name, self.uri())
