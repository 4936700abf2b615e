"""Step Journey backend: users, OAuth login and cookie-based JWT sessions."""

__version__ = "1.0.0"
