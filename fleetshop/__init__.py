"""Fleetshop: fleet maintenance work-order workflow and mechanic planning."""

__version__ = "0.3.0"
