"""Tests for :mod:`arena.players`."""
