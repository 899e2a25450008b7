"""Admin dashboard problem checks for the web application."""

__version__ = "0.1.0"
