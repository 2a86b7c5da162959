"""Distance geometry based conformer generation."""

__version__ = "0.1.0"
