"""Tests for :mod:`cardgate`."""
