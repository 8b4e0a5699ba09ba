import os
from dotenv import load_dotenv
from fastapi.security import OAuth2PasswordBearer
from typing import Dict, Any, Tuple, Type

# Load environment variables
load_dotenv()

class ConfigError(Exception):
    """Exception raised for missing configuration values"""
    pass

class Settings:
    # Define required environment variables
    REQUIRED_CONFIGS = [
        "DATABASE_URL",
        "DATABASE_NAME",
        "JWT_SECRET_KEY",
    ]

    # Define config with default values and types (None means required with no default)
    # Format: (default_value, type)
    CONFIG_DEFAULTS: Dict[str, Tuple[Any, Type]] = {
        "DATABASE_URL": (None, str),
        "DATABASE_NAME": (None, str),
        "JWT_SECRET_KEY": (None, str),
        "JWT_ALGORITHM": ("HS256", str),
        "JWT_ACCESS_TOKEN_EXPIRE_MINUTES": (30, int),
        # Database pool settings
        "DB_MAX_POOL_SIZE": (10, int),
        "DB_MAX_RECONNECT_ATTEMPTS": (5, int),
        "DB_RECONNECT_DELAY": (5, int),  # seconds
        "DB_SERVER_SELECTION_TIMEOUT_MS": (5000, int),
        "DB_CONNECT_TIMEOUT_MS": (5000, int),
        # Multi-document transactions need a replica set
        "DB_TRANSACTIONS_ENABLED": (True, bool),
        # Comma separated list of allowed origins for HTTP and socket clients
        "CORS_ORIGINS": ("http://localhost:3000", str),
        # Messaging settings
        "MESSAGES_PAGE_SIZE": (50, int),
        "CONVERSATIONS_PAGE_SIZE": (20, int),
        "USER_SEARCH_LIMIT": (50, int),
        "RECENT_ACTIVITY_MINUTES": (15, int),
        "TYPING_TIMEOUT_SECONDS": (3, int),
        "LOG_LEVEL": ("INFO", str),
    }

    def __init__(self):
        self.values = {}
        self._load_config()

    def _load_config(self):
        # Check for required environment variables
        missing_vars = []
        for var in self.REQUIRED_CONFIGS:
            if not os.getenv(var):
                missing_vars.append(var)

        if missing_vars:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing_vars)}")

        # Load all config values with type conversion
        for key, (default_value, type_) in self.CONFIG_DEFAULTS.items():
            value = os.getenv(key)

            if value is None:
                if default_value is None:
                    raise ConfigError(f"Missing required config value: {key}")
                self.values[key] = default_value
            else:
                try:
                    # Convert string value to expected type
                    if type_ == bool:
                        self.values[key] = value.lower() in ('true', '1', 'yes')
                    else:
                        self.values[key] = type_(value)
                except ValueError as e:
                    raise ConfigError(f"Invalid value for {key}: {str(e)}")

    def __getattr__(self, name):
        if name in self.values:
            return self.values[name]
        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

# Initialize settings
try:
    settings = Settings()

    # Tokens are issued by the account service; missing ones are rejected in dependencies/auth.py
    oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)

    # Make settings available for import
    DATABASE_URL = settings.DATABASE_URL
    DATABASE_NAME = settings.DATABASE_NAME
    JWT_SECRET_KEY = settings.JWT_SECRET_KEY
    JWT_ALGORITHM = settings.JWT_ALGORITHM
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    # Database pool settings
    DB_MAX_POOL_SIZE = settings.DB_MAX_POOL_SIZE
    DB_MAX_RECONNECT_ATTEMPTS = settings.DB_MAX_RECONNECT_ATTEMPTS
    DB_RECONNECT_DELAY = settings.DB_RECONNECT_DELAY
    DB_SERVER_SELECTION_TIMEOUT_MS = settings.DB_SERVER_SELECTION_TIMEOUT_MS
    DB_CONNECT_TIMEOUT_MS = settings.DB_CONNECT_TIMEOUT_MS
    DB_TRANSACTIONS_ENABLED = settings.DB_TRANSACTIONS_ENABLED

    CORS_ORIGINS = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

    # Messaging settings
    MESSAGES_PAGE_SIZE = settings.MESSAGES_PAGE_SIZE
    CONVERSATIONS_PAGE_SIZE = settings.CONVERSATIONS_PAGE_SIZE
    USER_SEARCH_LIMIT = settings.USER_SEARCH_LIMIT
    RECENT_ACTIVITY_MINUTES = settings.RECENT_ACTIVITY_MINUTES
    TYPING_TIMEOUT_SECONDS = settings.TYPING_TIMEOUT_SECONDS
    LOG_LEVEL = settings.LOG_LEVEL

except ConfigError as e:
    # Print error and exit
    print(f"Configuration Error: {e}")
    import sys
    sys.exit(1)
