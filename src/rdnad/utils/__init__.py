"""Utility functions for array conversion and parallel execution."""

__all__ = []
