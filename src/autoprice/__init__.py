"""autoprice — Turkish vehicle price-list collection and trend tracking."""

__version__ = "0.1.0"
