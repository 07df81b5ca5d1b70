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
Module provides `LocalRepositoryLocator` resolving artifacts in a local
Maven-layout repository.
"""

import logging
import os

from .errors import ArtifactResolutionError


class LocalRepositoryLocator(object):
    """Resolve artifact coordinates to files of a local repository.

    Repository uses Maven layout: artifact `ledger` of the group
    `org.apache.fineract.cn.ledger` version `0.1.0` packaged as `jar`
    is looked up at
    `<root>/org/apache/fineract/cn/ledger/ledger/0.1.0/ledger-0.1.0.jar`.
    Nothing is downloaded, artifacts must be installed beforehand.
    """

    def __init__(self, root, name=None):
        self._root = os.path.abspath(os.path.expanduser(str(root)))
        self._logger = logging.getLogger(
            name if name is not None else LocalRepositoryLocator.__name__
        )

    @property
    def root(self):
        return self._root

    def path(self, group, artifact, packaging, version):
        """Path the artifact is expected at, existing or not."""
        return os.path.join(
            self._root, *group.split('.'), artifact, version,
            f'{artifact}-{version}.{packaging}'
        )

    def resolve(self, group, artifact, packaging, version):
        """Resolve artifact to the absolute path of its file.

        Raises:
            ArtifactResolutionError: No such artifact in the repository.
        """
        path = self.path(group, artifact, packaging, version)
        if not os.path.isfile(path):
            raise ArtifactResolutionError(
                f'Failed to resolve {group}:{artifact}:{packaging}:{version}:'
                f' file {path} does not exist!'
            )
        self._logger.debug('Resolved %s:%s:%s:%s to %s',
                           group, artifact, packaging, version, path)
        return path
