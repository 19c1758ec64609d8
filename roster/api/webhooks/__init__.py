"""Webhook ingestion endpoints."""
