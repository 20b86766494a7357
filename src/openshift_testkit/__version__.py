"""Version information for openshift_testkit."""

__version__ = "0.1.0"
