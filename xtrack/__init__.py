"""X-Track - analytics client for trading-account monitoring."""

__version__ = "0.1.0"
