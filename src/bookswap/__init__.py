"""Peer-to-peer book swapping backed by Firebase."""

__version__ = "0.1.0"
