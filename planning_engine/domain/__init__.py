"""Projection, filtering and calendar layout of occurrences."""
