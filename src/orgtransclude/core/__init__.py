"""Core model, ports and resolution engine."""
