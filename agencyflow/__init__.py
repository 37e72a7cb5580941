"""agencyflow: campaign workflow backend for marketing agencies."""

__version__ = "0.3.0"
