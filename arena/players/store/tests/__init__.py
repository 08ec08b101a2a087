"""Tests for :mod:`arena.players.store`."""
