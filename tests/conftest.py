"""Configuration file for pytest containing fixtures and configuration.

This module provides fixtures that can be used across multiple test files:
- network: A simulated network with instant confirmations
- accounts: The simulated network's signing accounts
- journal_store: An empty in-memory journal store
- fast_options: Deploy options without retry delays, using the in-memory store
"""

import pytest

from chaindag.api import DeployOptions
from chaindag.drivers.journal_store import InMemoryJournalStore
from chaindag.drivers.network import SimulatedNetwork
from chaindag.kernel.validation import RetryConfig


@pytest.fixture
def network() -> SimulatedNetwork:
    """Fixture providing a simulated network."""
    return SimulatedNetwork()


@pytest.fixture
def accounts(network: SimulatedNetwork) -> list[str]:
    return list(network.accounts)


@pytest.fixture
def journal_store() -> InMemoryJournalStore:
    return InMemoryJournalStore()


@pytest.fixture
def fast_options(journal_store: InMemoryJournalStore) -> DeployOptions:
    """Fixture providing deploy options suited for tests."""
    return DeployOptions(
        deployment_id="test",
        journal_store=journal_store,
        retry=RetryConfig(max_attempts=3, delay=0.0),
        poll_interval=0.001,
    )
