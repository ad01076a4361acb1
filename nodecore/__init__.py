"""Marzban node core updater — install and update the Xray core binary."""

__version__ = "0.1.0"
