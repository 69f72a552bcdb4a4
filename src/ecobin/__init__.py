"""EcoBin waste-collection dispatch service."""

__version__ = "0.1.0"
