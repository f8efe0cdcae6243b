"""ManaVault: Magic: The Gathering collection and deck-building service."""
