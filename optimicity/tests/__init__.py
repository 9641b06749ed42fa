"""Tests for the OptimiCity engine."""
