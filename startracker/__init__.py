"""Star catalogue synthesis, star identification and attitude estimation."""

__version__ = "0.1.0"