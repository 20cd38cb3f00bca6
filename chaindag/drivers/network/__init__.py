"""Network drivers."""

from chaindag.drivers.network.simulated import Behavior, SimulatedNetwork, default_accounts

__all__ = ["Behavior", "SimulatedNetwork", "default_accounts"]
