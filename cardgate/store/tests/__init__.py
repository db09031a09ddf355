"""Tests for :mod:`cardgate.store`."""
