"""Tests for tablequery."""
