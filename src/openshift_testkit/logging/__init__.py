"""Logging configuration for openshift_testkit."""

from openshift_testkit.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
