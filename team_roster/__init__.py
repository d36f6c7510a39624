"""Team roster reconciliation across D4H, Google, Slack and CalTopo."""

__version__ = "0.1.0"
