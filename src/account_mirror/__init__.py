"""Live mirror of a trading account: event stream reconciliation with REST snapshots."""

__version__ = "1.0.0"
