"""BSON document types and codec, wire protocol messages, hex dumps and small utilities."""

__version__ = "0.1.0"