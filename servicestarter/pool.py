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
Module provides `AllocationPool` which hands out network ports and the
key pair to the services started during one test run.
"""

import collections
import logging
import random
import threading
import time

import psutil
from cryptography.hazmat.primitives.asymmetric import rsa


class KeyPair(collections.namedtuple(
        'KeyPair', ['timestamp', 'public_key', 'private_key'])):
    """RSA key pair shared by services to trust each other.

    Fields:
        timestamp: String identifying the key pair.
        public_key: Instance of `cryptography` `RSAPublicKey`.
        private_key: Instance of `cryptography` `RSAPrivateKey`.
    """

    __slots__ = ()

    @property
    def public_modulus(self):
        return self.public_key.public_numbers().n

    @property
    def public_exponent(self):
        return self.public_key.public_numbers().e

    @property
    def private_modulus(self):
        return self.private_key.private_numbers().public_numbers.n

    @property
    def private_exponent(self):
        return self.private_key.private_numbers().d


def generate_key_pair(key_size=2048):
    """Generate new RSA key pair stamped with the current UTC time."""
    private_key = rsa.generate_private_key(public_exponent=65537,
                                           key_size=key_size)
    timestamp = time.strftime('%Y-%m-%dT%H_%M_%S', time.gmtime())
    return KeyPair(timestamp=timestamp,
                   public_key=private_key.public_key(),
                   private_key=private_key)


class AllocationPool(object):
    """Allocator of ports and keys shared by all services of a test run.

    Pool is created once per test run and passed to every service.
    Each call to `fresh_port` or `fresh_debug_port` returns a port
    which has never been returned by this pool before and which is not
    listened by any process at the moment of the call. Allocations are
    serialized, so services may be configured from different threads.

    Example:
      ```
      with AllocationPool() as pool:
          port = pool.fresh_port()
          debug_port = pool.fresh_debug_port()
      ```
    """

    # Range to choose service ports from. The first port is selected
    # randomly within the range, then ports are given sequentially.
    PORT_RANGE = (49152, 65535)
    # The first port given for remote debugging.
    DEBUG_PORT_START = 5005
    # Size of the RSA keys generated by default.
    KEY_SIZE = 2048

    def __init__(self, key_pair=None, name=None):
        """Constructs `AllocationPool` instance.

        Args:
            key_pair: Instance of `KeyPair` to share between services.
                New key pair is generated when `None`.
            name: Name of the pool instance, used for logging.
        """
        self._logger = logging.getLogger(
            name if name is not None else AllocationPool.__name__
        )
        self._lock = threading.Lock()
        self._taken = set()
        self._next_port = random.randint(*self.PORT_RANGE)
        self._next_debug_port = self.DEBUG_PORT_START
        self._closed = False
        self._key_pair = (key_pair if key_pair is not None
                          else generate_key_pair(self.KEY_SIZE))
        self._logger.debug('Key pair %s generated', self._key_pair.timestamp)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def key_pair(self):
        """Key pair shared by all the services."""
        return self._key_pair

    @property
    def allocated(self):
        """Set of ports given out by the pool so far."""
        with self._lock:
            return set(self._taken)

    def fresh_port(self):
        """Allocate port for a service to listen to."""
        with self._lock:
            port = self._allocate('_next_port', self.PORT_RANGE)
        self._logger.debug('Port %s allocated', port)
        return port

    def fresh_debug_port(self):
        """Allocate port for a remote debugger to attach to."""
        with self._lock:
            port = self._allocate('_next_debug_port',
                                  (self.DEBUG_PORT_START,
                                   self.PORT_RANGE[0] - 1))
        self._logger.debug('Debug port %s allocated', port)
        return port

    def close(self):
        """Tear down the pool, further allocations are rejected."""
        with self._lock:
            self._closed = True
            self._taken.clear()

    def _allocate(self, counter, port_range):
        """Pick next free port advancing counter stored in the attribute
           named `counter`. Must be called under the lock."""
        if self._closed:
            raise RuntimeError('Allocation pool is closed!')
        low, high = port_range
        busy = self._listened_ports()
        for _ in range(high - low + 1):
            port = getattr(self, counter)
            setattr(self, counter, port + 1 if port < high else low)
            if port in self._taken or port in busy:
                continue
            self._taken.add(port)
            return port
        raise RuntimeError(f'No free ports left in range {low}-{high}!')

    def _listened_ports(self):
        """Ports currently listened on this host, empty set if the
           platform does not let us know."""
        try:
            connections = psutil.net_connections(kind='inet')
        except psutil.AccessDenied:
            self._logger.debug('Not permitted to list listened ports')
            return set()
        return {conn.laddr[1] for conn in connections
                if conn.status == psutil.CONN_LISTEN}
