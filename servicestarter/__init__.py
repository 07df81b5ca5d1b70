#
# coding: utf-8
# Copyright (C) DATADVANCE, 2010-2018
#

"""
Package provides class `Microservice` that starts a service from its
artifact for integration tests, waits it to register in the discovery
registry and terminates it. See description of class `Microservice`
for details.
"""

from .artifacts import LocalRepositoryLocator
from .discovery import EurekaClient
from .environment import RuntimeEnvironment
from .errors import (AlreadyStartedError, ArtifactResolutionError,
                     NotStartedError, ProcessStartError, ServiceStarterError)
from .microservice import InitializedMicroservice, Microservice
from .pool import AllocationPool, KeyPair, generate_key_pair
from .readiness import wait_until_registered
from .supervisor import ProcessSupervisor, build_command
from .testenv import ApiFactory, IntegrationTestEnvironment
