"""Logging and metrics for kubedeck."""
