"""Integration tests for the job runner."""
