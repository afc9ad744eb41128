"""Transport throughput benchmark for TCP and TLS."""

__version__ = "0.1.0"
__all__ = ["__version__"]