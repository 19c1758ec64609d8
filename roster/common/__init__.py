"""Shared helpers used across Roster layers."""
