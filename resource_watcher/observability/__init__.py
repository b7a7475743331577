"""Logging and metrics for resource-watcher."""
