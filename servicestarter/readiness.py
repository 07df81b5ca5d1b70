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
Module provides `wait_until_registered` function which waits for a
service to appear in the discovery registry.
"""

import logging
import time

_LOGGER = logging.getLogger(__name__)


def wait_until_registered(discovery_client, application_name, max_wait,
                          sleep=time.sleep):
    """Wait until application instance is registered in discovery.

    Registry is queried repeatedly with exponentially growing pauses
    between queries: 1, 2, 4, 8... seconds. Waiting stops as soon as
    the total time slept exceeds `max_wait`. The check happens after
    the pause, so the overall waiting time may reach almost twice the
    `max_wait`.

    Args:
        discovery_client: Object with method `get_instances(name)`
            returning a sequence of instances registered under the
            given name. If `None` then registration cannot be verified
            and function returns immediately.
        application_name: Name the application registers under.
        max_wait: Waiting budget in seconds.
        sleep: Function to pause for the given number of seconds.
    Returns:
        `True` if at least one instance is registered, `False`
        otherwise.
    """
    if discovery_client is None:
        _LOGGER.warning('No discovery client, cannot verify %s registration',
                        application_name)
        return False

    next_wait = 1
    sum_wait = 0
    while True:
        instances = discovery_client.get_instances(application_name)
        if instances:
            _LOGGER.info('%s registered after %s seconds',
                         application_name, sum_wait)
            return True

        _LOGGER.debug('%s is not registered yet, next check in %s seconds',
                      application_name, next_wait)
        sleep(next_wait)
        sum_wait += next_wait
        next_wait *= 2

        if sum_wait > max_wait:
            _LOGGER.warning('%s is not registered in %s seconds',
                            application_name, sum_wait)
            return False
