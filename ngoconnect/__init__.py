"""NGO verification and donation fulfillment service."""

__version__ = "1.0.0"
