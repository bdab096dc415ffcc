"""CraftAds: AI ad generation backend with a credit ledger."""

__version__ = "1.0.0"
