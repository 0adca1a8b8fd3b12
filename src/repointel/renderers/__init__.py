"""Helpers that shape facts into rendered markdown."""
