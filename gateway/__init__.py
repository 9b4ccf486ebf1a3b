"""Multi-chain AMM trading gateway."""

__version__ = "0.1.0"
