"""LMS research survey intake backend."""
