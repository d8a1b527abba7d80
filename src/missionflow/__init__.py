"""Mission Flow: gamified onboarding campaigns with dependency-linked missions."""

__version__ = "0.1.0"
