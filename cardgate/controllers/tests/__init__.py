"""Tests for :mod:`cardgate.controllers`."""
