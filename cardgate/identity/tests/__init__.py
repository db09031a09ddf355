"""Tests for :mod:`cardgate.identity`."""
