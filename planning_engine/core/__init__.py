"""Calendar arithmetic helpers."""
