"""ychart — org charts from a single YAML document."""

__version__ = "0.4.0"
