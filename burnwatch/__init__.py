"""burnwatch: buy/burn notifications for one SPL token."""

__version__ = "0.1.0"
