"""Utility functions for medialib."""
