"""User directory read endpoint."""
