"""
Configuration constants for the Calculator Engine service.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Display
DIVISION_BY_ZERO_MESSAGE = os.getenv("DIVISION_BY_ZERO_MESSAGE", "Cannot divide by zero")
OVERFLOW_MESSAGE = os.getenv("OVERFLOW_MESSAGE", "Overflow")

# Significant digits kept by the decimal evaluator
DECIMAL_PRECISION = int(os.getenv("DECIMAL_PRECISION", "16"))

# Guardrails
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "1000"))
MAX_KEYS_PER_REQUEST = int(os.getenv("MAX_KEYS_PER_REQUEST", "256"))
KEYS_RATE_LIMIT = os.getenv("KEYS_RATE_LIMIT", "120/minute")

# Logging
LOG_FILE = os.getenv("LOG_FILE", "calculator.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))
SLOW_REQUEST_THRESHOLD_MS = float(os.getenv("SLOW_REQUEST_THRESHOLD_MS", "250"))

# Themes offered by the presentation layer
THEMES = ["light", "dark"]
DEFAULT_THEME = os.getenv("DEFAULT_THEME", "light")
