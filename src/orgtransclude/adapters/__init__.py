"""Filesystem and markup adapters for the core ports."""
