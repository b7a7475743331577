"""resource-watcher: detect added and removed AWS resources across regions."""

__version__ = "0.1.0"
