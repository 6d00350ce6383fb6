"""Concrete adapters for the interfaces in ``seedflow.interfaces``."""
