"""Ephemeral node-collector jobs: build, run, read logs, clean up."""

__version__ = "0.1.0"
