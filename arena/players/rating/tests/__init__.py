"""Tests for :mod:`arena.players.rating`."""
