"""CLI module for execrelay."""
