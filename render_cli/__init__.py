"""Interactive terminal client for Render services, deploys and logs."""

__version__ = "0.3.0"
