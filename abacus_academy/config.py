"""Application configuration settings.

This module provides centralized configuration management for the Abacus
Academy core. All settings can be overridden via environment variables.

Environment Variables:
    DATABASE_URL: SQLAlchemy database connection URL for progress snapshots
        Default: sqlite:///data/abacus_academy.db
        Example (in-memory): sqlite:///:memory:

    SNAPSHOT_KEY: Key under which the progress snapshot is stored
        Default: abacus_academy_state

    ENVIRONMENT: Deployment environment name
        Default: development
        Options: development, production
        Affects: logging format

    LOG_LEVEL: Logging verbosity level
        Default: INFO (production), DEBUG (development)
        Options: DEBUG, INFO, WARNING, ERROR, CRITICAL

    CHALLENGE_TICK_SECONDS: Wall-clock length of one challenge countdown unit
        Default: 1.0

Usage:
    >>> from abacus_academy.config import settings
    >>> print(settings.DATABASE_URL)
    >>> if settings.is_production:
    ...     print("Running in production mode")
"""
import os


class Settings:
    """Application settings loaded from environment variables."""

    # Persistence settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///data/abacus_academy.db")
    """SQLAlchemy database connection URL for the snapshot table."""

    SNAPSHOT_KEY: str = os.getenv("SNAPSHOT_KEY", "abacus_academy_state")
    """Row key of the persisted progress snapshot."""

    # Application settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    """Deployment environment: development or production."""

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "")
    """Logging level. Empty string means auto-detect based on ENVIRONMENT."""

    # Drill timing
    CHALLENGE_TICK_SECONDS: float = float(os.getenv("CHALLENGE_TICK_SECONDS", "1.0"))
    """Seconds per challenge countdown unit."""

    @property
    def is_production(self) -> bool:
        """Check if running in production environment.

        Returns:
            True if ENVIRONMENT is 'production' (case-insensitive)
        """
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment.

        Returns:
            True if ENVIRONMENT is 'development' (case-insensitive)
        """
        return self.ENVIRONMENT.lower() == "development"


settings = Settings()
"""Global settings instance. Import and use throughout the application."""
