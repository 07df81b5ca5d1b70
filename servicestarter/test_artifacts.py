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
Module with tests for `LocalRepositoryLocator` class.
"""

import os
import sys

import pytest

from .artifacts import LocalRepositoryLocator
from .errors import ArtifactResolutionError


def test_resolve(repository):
    """Check that installed artifact is found by its coordinates."""
    locator = LocalRepositoryLocator(repository)
    path = locator.resolve('org.apache.fineract.cn.ledger', 'service-boot',
                           'jar', 'v1.2.0')
    assert os.path.isfile(path)
    assert path == os.path.join(
        str(repository), 'org', 'apache', 'fineract', 'cn', 'ledger',
        'service-boot', 'v1.2.0', 'service-boot-v1.2.0.jar'
    )


@pytest.mark.parametrize('coordinates', [
    ('org.apache.fineract.cn.ledger', 'service-boot', 'jar', 'v9.9.9'),
    ('org.apache.fineract.cn.absent', 'service-boot', 'jar', 'v1.2.0'),
    ('org.apache.fineract.cn.ledger', 'service-boot', 'war', 'v1.2.0'),
])
def test_unresolvable(repository, coordinates):
    """Check that absent artifacts raise `ArtifactResolutionError`."""
    locator = LocalRepositoryLocator(repository)
    with pytest.raises(ArtifactResolutionError):
        locator.resolve(*coordinates)


if __name__ == '__main__':
    pytest.main(sys.argv)
