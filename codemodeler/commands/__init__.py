"""Commands module for the cmod CLI."""
