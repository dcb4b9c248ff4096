"""Adaptadores de I/O (HTTP)."""
