"""Safety-first data recovery: scan plans, scan reports and read-only extraction."""

__version__ = "0.1.0"