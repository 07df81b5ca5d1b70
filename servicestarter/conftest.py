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
Fixtures shared by the tests of the package.
"""

import json
import os
import sys
import textwrap
import time

import psutil
import pytest

from .artifacts import LocalRepositoryLocator
from .pool import AllocationPool, generate_key_pair
from .testenv import IntegrationTestEnvironment


# Disable warning that outer name is redefined: `pytest` dependency
# injection works this way.
# pylint: disable=redefined-outer-name

# Fake `java` is a script with a shebang line, it does not run on
# Windows.
posix_only = pytest.mark.skipif(sys.platform == 'win32',
                                reason='fake runtime requires shebang')


@pytest.fixture(autouse=True)
def no_children_left():
    """Check that test did not leave child processes."""
    yield
    children = psutil.Process().children(recursive=True)
    assert not children, 'test has left child processes'


@pytest.fixture(scope='session')
def key_pair():
    """Key pair generated once for all tests, generation is slow."""
    return generate_key_pair()


@pytest.fixture
def pool(key_pair):
    with AllocationPool(key_pair=key_pair) as allocation_pool:
        yield allocation_pool


@pytest.fixture(scope='session')
def fake_java(tmpdir_factory):
    """Prepare executable script pretending to be `java`.

    Script writes its command line arguments and environment as JSON
    to the file named by the environment variable `fake.output` (if
    given). Then it exits with the code from the variable `fake.exit`
    if it is set, or sleeps until terminated otherwise.

    Returns:
        Path to the executable script.
    """

    script = textwrap.dedent(
        '''
        import json
        import os
        import sys
        import time
        output = os.environ.get('fake.output')
        if output:
            with open(output + '.tmp', 'w') as f:
                json.dump({'argv': sys.argv[1:], 'env': dict(os.environ)}, f)
            os.replace(output + '.tmp', output)
        if 'fake.exit' in os.environ:
            sys.exit(int(os.environ['fake.exit']))
        time.sleep(100500)
        '''
    )
    filename = str(tmpdir_factory.mktemp('fake_java').join('java'))
    with open(filename, 'w') as f:
        f.write(f'#!{sys.executable}\n')
        f.write(script)
    os.chmod(filename, 0o755)
    return filename


@pytest.fixture
def read_report():
    """Callable which waits fake `java` to write its report and loads
       it."""

    def read(filename, timeout=10):
        deadline = time.monotonic() + timeout
        while not os.path.exists(filename):
            assert time.monotonic() < deadline, 'fake java did not report'
            time.sleep(0.02)
        with open(filename) as f:
            return json.load(f)

    return read


@pytest.fixture
def wait_exit():
    """Callable which waits supervised process to exit on its own."""

    def wait(supervisor, timeout=10):
        deadline = time.monotonic() + timeout
        while supervisor.returncode is None:
            assert time.monotonic() < deadline, 'process did not exit'
            time.sleep(0.02)
        return supervisor.returncode

    return wait


@pytest.fixture
def repository(tmp_path):
    """Local repository with a few fake jars installed.

    Returns:
        Path to the repository root.
    """
    for artifact, version in [('ledger', 'v1.2.0'), ('identity', '0.1.0')]:
        jar_dir = (tmp_path / 'org' / 'apache' / 'fineract' / 'cn' / artifact /
                   'service-boot' / version)
        jar_dir.mkdir(parents=True)
        (jar_dir / f'service-boot-{version}.jar').write_bytes(b'PK')
    return tmp_path


@pytest.fixture
def test_env(pool, fake_java, repository):
    """Test environment running fake `java` from the fake repository."""
    with IntegrationTestEnvironment(
            pool=pool, runtime=fake_java,
            locator=LocalRepositoryLocator(repository)) as environment:
        yield environment
