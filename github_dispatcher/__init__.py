"""github-dispatcher - routes GitHub push webhooks onto a pipeline work queue."""
__version__ = "0.1.0"
