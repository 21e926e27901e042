"""Data access for dispatch exports."""
