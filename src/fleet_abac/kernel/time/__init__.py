"""Kernel time – clock abstraction."""
from fleet_abac.kernel.time.clock import Clock, FrozenClock, SystemClock

__all__ = ["Clock", "FrozenClock", "SystemClock"]
