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
Module provides `RuntimeEnvironment`: the properties handed to a
service process through its environment variables.
"""

import collections.abc


class RuntimeEnvironment(collections.abc.Mapping):
    """Properties of one service instance.

    The object is a read-only mapping from property names to string
    values with a few setters and derived accessors on top of it.
    Properties are applied to the service process environment when the
    process starts, changes made afterwards do not reach the process.

    Environment does not allocate the port itself: its owner (usually
    `Microservice`) must set `SERVER_PORT_PROPERTY` and the key pair
    before `server_uri` is used.

    Example:
      ```
      env = RuntimeEnvironment('ledger-v1')
      env.set_property(RuntimeEnvironment.SERVER_PORT_PROPERTY, 2020)
      env.add_properties({'logging.level.root': 'DEBUG'})
      env.server_uri()  # 'http://localhost:2020/ledger/v1'
      ```
    """

    SPRING_APPLICATION_NAME_PROPERTY = 'spring.application.name'
    SERVER_PORT_PROPERTY = 'server.port'
    SERVER_CONTEXT_PATH_PROPERTY = 'server.contextPath'
    SPRING_CLOUD_DISCOVERY_ENABLED_PROPERTY = 'spring.cloud.discovery.enabled'
    RIBBON_USES_EUREKA_PROPERTY = 'ribbon.eureka.enabled'
    KEY_TIMESTAMP_PROPERTY = 'system.publicKey.timestamp'
    PUBLIC_KEY_MODULUS_PROPERTY = 'system.publicKey.modulus'
    PUBLIC_KEY_EXPONENT_PROPERTY = 'system.publicKey.exponent'
    PRIVATE_KEY_MODULUS_PROPERTY = 'system.privateKey.modulus'
    PRIVATE_KEY_EXPONENT_PROPERTY = 'system.privateKey.exponent'

    def __init__(self, application_name, host='localhost'):
        """Constructs `RuntimeEnvironment` instance.

        Args:
            application_name: Name the service registers under, e.g.
                'ledger-v1'. Also determines the context path: dashes
                become slashes, so 'ledger-v1' is served at
                '/ledger/v1'.
            host: Host name used to build the server URI.
        """
        assert application_name, 'Empty application name!'
        self._application_name = str(application_name)
        self._host = str(host)
        self._properties = {}
        self.set_property(self.SPRING_APPLICATION_NAME_PROPERTY,
                          self._application_name)
        self.set_property(self.SERVER_CONTEXT_PATH_PROPERTY,
                          '/' + self._application_name.replace('-', '/'))

    def __getitem__(self, key):
        return self._properties[key]

    def __iter__(self):
        return iter(self._properties)

    def __len__(self):
        return len(self._properties)

    def __repr__(self):
        return 'RuntimeEnvironment({!r}, {!r})'.format(
            self._application_name, self._properties
        )

    @property
    def application_name(self):
        return self._application_name

    @property
    def host(self):
        return self._host

    @property
    def properties(self):
        """Copy of all the properties as a `dict`."""
        return dict(self._properties)

    def set_property(self, key, value):
        key = str(key).strip()
        assert key, 'Empty property name!'
        self._properties[key] = str(value)

    def get_property(self, key, default=None):
        return self._properties.get(key, default)

    def add_properties(self, properties):
        """Overlay given properties over the current ones.

        Keys already present are overwritten, other keys are kept.

        Args:
            properties: Mapping or iterable of key-value pairs.
        Returns:
            The environment itself, so calls can be chained.
        """
        for key, value in dict(properties).items():
            self.set_property(key, value)
        return self

    def set_key_pair(self, key_pair):
        """Store key pair (instance of `KeyPair`) as properties."""
        self.set_property(self.KEY_TIMESTAMP_PROPERTY, key_pair.timestamp)
        self.set_property(self.PUBLIC_KEY_MODULUS_PROPERTY,
                          key_pair.public_modulus)
        self.set_property(self.PUBLIC_KEY_EXPONENT_PROPERTY,
                          key_pair.public_exponent)
        self.set_property(self.PRIVATE_KEY_MODULUS_PROPERTY,
                          key_pair.private_modulus)
        self.set_property(self.PRIVATE_KEY_EXPONENT_PROPERTY,
                          key_pair.private_exponent)

    @property
    def server_port(self):
        """Port assigned to the service, `None` if not assigned yet."""
        port = self.get_property(self.SERVER_PORT_PROPERTY)
        return int(port) if port is not None else None

    def server_uri(self):
        """Base URI the service is reachable at."""
        assert self.server_port is not None, 'Server port is not set!'
        return 'http://{}:{}{}'.format(
            self._host, self.server_port,
            self.get_property(self.SERVER_CONTEXT_PATH_PROPERTY, '')
        )

    def populate(self, env):
        """Overlay properties on the given environment mapping.

        Args:
            env: Mutable mapping, e.g. a copy of `os.environ`.
        Returns:
            The same `env` object.
        """
        env.update(self._properties)
        return env
