"""Application version."""
APP_VERSION = "2.0.0"
