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
Exceptions raised while starting and stopping services.
"""


class ServiceStarterError(RuntimeError):
    """Base class of all the errors raised by the package."""


class ArtifactResolutionError(ServiceStarterError):
    """Artifact cannot be located in the repository."""


class ProcessStartError(ServiceStarterError):
    """Operating system failed to spawn the service process."""


class AlreadyStartedError(ProcessStartError):
    """Service instance has already been started once.

    Service instances are not reusable: one instance stands for exactly
    one launch attempt.
    """


class NotStartedError(ServiceStarterError):
    """Termination is requested for a service which was never started."""
