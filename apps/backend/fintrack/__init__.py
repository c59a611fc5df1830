"""Fintrack backend package."""
