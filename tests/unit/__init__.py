"""Unit tests for the CI runner."""
