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
Module provides `ProcessSupervisor` class which starts a service from
its artifact and terminates it.
"""

import logging
import os
import subprocess

import psutil

from .errors import (AlreadyStartedError, ArtifactResolutionError,
                     NotStartedError, ProcessStartError)


def build_command(runtime, artifact_path, debug_port=None,
                  debug_suspend=False):
    """Build command line to run the artifact.

    Args:
        runtime: Path to the `java` executable.
        artifact_path: Path to the runnable jar.
        debug_port: Port for the remote debugger to attach to, `None`
            to run without the debug agent.
        debug_suspend: Whether process waits for a debugger to attach
            before running.
    Returns:
        List with executable and its arguments.
    """
    cmd = [str(runtime)]
    if debug_port is not None:
        cmd.append(
            '-agentlib:jdwp=transport=dt_socket,server=y,'
            'suspend={},address={}'.format('y' if debug_suspend else 'n',
                                           int(debug_port))
        )
    cmd += ['-jar', str(artifact_path)]
    return cmd


class ProcessSupervisor(object):
    """Owner of the single process of a service instance.

    Supervisor starts service process from the artifact with
    `RuntimeEnvironment` applied as the process environment, and
    terminates it together with all its children. Standard streams
    are inherited from the current process.

    Supervisor is not reusable: `start` may succeed only once. Method
    `kill` is expected to be called on every path, even when `start`
    has failed, hence it raises distinct `NotStartedError` in such
    case.

    Example:
      ```
      supervisor = ProcessSupervisor('ledger-v1', '/usr/bin/java', env)
      supervisor.start('/repo/ledger-0.1.0.jar')
      try:
          ...
      finally:
          exitcode = supervisor.kill()
      ```
    """

    # Process termination timeout.
    TERMINATION_TIMEOUT = 5

    def __init__(self, name, runtime, environment, debug_port=None,
                 debug_suspend=False):
        """Constructs `ProcessSupervisor` instance.

        Args:
            name: Service name, used for logging.
            runtime: Path to the `java` executable.
            environment: Instance of `RuntimeEnvironment` with the
                process properties.
            debug_port: Port for the remote debugger, `None` to run
                without the debug agent.
            debug_suspend: Whether process waits for a debugger.
        """
        self._name = str(name)
        self._runtime = runtime
        self._environment = environment
        self._debug_port = debug_port
        self._debug_suspend = bool(debug_suspend)
        self._process = None
        self._cmd = None
        self._logger = logging.getLogger(self._name)

    @property
    def cmd(self):
        """Command line of the started process, `None` before start."""
        return self._cmd

    @property
    def pid(self):
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self):
        """Exit code if the process has finished, `None` otherwise."""
        if self._process is None:
            return None
        return self._process.poll()

    @property
    def running(self):
        return self._process is not None and self._process.poll() is None

    def start(self, artifact_path):
        """Spawn service process.

        Args:
            artifact_path: Path to the runnable jar.
        Raises:
            AlreadyStartedError: Process has already been started.
            ArtifactResolutionError: Artifact file does not exist.
            ProcessStartError: Operating system failed to spawn the
                process.
        """
        if self._cmd is not None:
            raise AlreadyStartedError(f'{self._name} is already started!')
        if not os.path.isfile(artifact_path):
            raise ArtifactResolutionError(
                f'Artifact of {self._name} not found: {artifact_path}!'
            )

        cmd = build_command(self._runtime, os.path.abspath(artifact_path),
                            self._debug_port, self._debug_suspend)
        # Process receives parent's environment with all the properties
        # put on top of it.
        env = self._environment.populate(dict(os.environ))

        self._logger.info('Starting %s', self._name)
        self._logger.info('Exec: %s', ' '.join(cmd))
        self._cmd = cmd
        try:
            self._process = subprocess.Popen(cmd, env=env)
        except (OSError, ValueError) as e:
            raise ProcessStartError(
                f'Failed to start {self._name}: {e}'
            ) from e
        self._logger.info('%s[%s] started', self._name, self._process.pid)

    def kill(self):
        """Terminate the process and wait until it finishes.

        Children left by the process are terminated as well.

        Returns:
            Exit code of the process, negative signal number if it has
            been terminated by signal (POSIX only).
        Raises:
            NotStartedError: Process was never started.
        """
        if self._process is None:
            raise NotStartedError(f'{self._name} was never started!')

        process = self._process
        # Collect children before the process goes down, otherwise
        # they become orphans and we lose them.
        targets = set()
        if process.poll() is None:
            try:
                targets.update(psutil.Process(process.pid)
                               .children(recursive=True))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                self._logger.debug('%s[%s] has just disappeared.',
                                   self._name, process.pid)

        try:
            self._logger.info('Terminating %s[%s]...', self._name, process.pid)
            try:
                process.terminate()
            except ProcessLookupError:
                self._logger.info('...service %s[%s] has just disappeared.',
                                  self._name, process.pid)
            try:
                exitcode = process.wait(timeout=self.TERMINATION_TIMEOUT)
            except subprocess.TimeoutExpired:
                self._logger.warning(
                    '%s[%s] did not stop in %s secs, kill it!',
                    self._name, process.pid,
                    self.TERMINATION_TIMEOUT
                )
                process.kill()
                exitcode = process.wait()
            self._logger.info('...process %s[%s] finished with exit code %s.',
                              self._name, process.pid, exitcode)
        finally:
            self._exterminate_processes(targets)

        return exitcode

    def _exterminate_processes(self, processes):
        """Exterminate the given collection of `psutil.Process`
           processes.

        Algorithm invokes `terminate()` wait a little and invokes
        `kill()`. Does nothing if `processes` is empty.
        """

        if not processes:
            return

        self._logger.debug('Process extermination sequence initiated for: %s.',
                           [p.pid for p in processes])

        for p in processes:
            if not p.is_running():
                self._logger.debug(
                    '...process %s has already disappeared!', p.pid
                )
                continue

            self._logger.debug('Terminating process %s', p.pid)
            try:
                p.terminate()
                self._logger.debug('...terminate signal sent to %s...', p.pid)
            except psutil.NoSuchProcess:
                # it is OK if process has already committed suicide
                self._logger.debug(
                    '...process %s has just disappeared!', p.pid
                )
                continue
            try:
                # wait the process to exit gracefully
                exitcode = p.wait(timeout=self.TERMINATION_TIMEOUT)
                self._logger.debug(
                    '...process %s finished with exit code %s.',
                    p.pid, exitcode
                )
            except psutil.TimeoutExpired:
                # OK, it is still here - kill it
                self._logger.debug(
                    '...process %s refused to die peacefully, kill it...',
                    p.pid
                )
                try:
                    p.kill()
                    p.wait(timeout=self.TERMINATION_TIMEOUT)
                except psutil.NoSuchProcess:
                    pass
                except psutil.TimeoutExpired:
                    self._logger.error(
                        'Could not kill extremely uncrushable process %s!',
                        p.pid
                    )
