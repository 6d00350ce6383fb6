"""seedflow: turns uploaded content into explained, study-ready seeds."""

__version__ = "0.1.0"
