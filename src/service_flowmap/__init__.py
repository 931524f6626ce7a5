"""Service Flowmap - interface flow maps of IT services."""

__version__ = "0.3.0"
__author__ = "Service Flowmap Contributors"

from .core.exceptions import FlowMapError

__all__ = ["FlowMapError", "__version__"]
