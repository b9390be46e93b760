"""Building blocks and a discrete-event simulator for BFT consensus protocols."""

__version__ = "0.1.0"