"""Tests for :mod:`cardgate.auth`."""
