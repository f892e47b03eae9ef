"""Image Proxy Service: on-the-fly image transformation proxy."""

__version__ = "1.0.0"

__all__ = ["__version__"]
