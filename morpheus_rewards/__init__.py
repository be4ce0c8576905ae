"""Morpheus capital reward estimation and MOR bridge completion tracking."""

__version__ = "0.1.0"
