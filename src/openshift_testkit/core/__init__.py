"""Core configuration and application metadata."""
