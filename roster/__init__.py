"""Roster: a webhook-driven user directory for Clerk accounts."""
