"""Production Timeline Tracker: season task graphs, schedule propagation and attention tracking."""

__version__ = "0.1.0"
