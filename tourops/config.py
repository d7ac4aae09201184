import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration - shared across all environments"""

    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    BASE_DIR = os.path.dirname(os.path.abspath(__file__))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_TO_FILE = os.environ.get('LOG_TO_FILE', 'true').lower() == 'true'
    LOGS_DIR = os.environ.get('LOGS_DIR', os.path.join(BASE_DIR, 'logs'))

    # Billing settings
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'EGP')
    INVOICE_NUMBER_MAX_ATTEMPTS = int(os.environ.get('INVOICE_NUMBER_MAX_ATTEMPTS', 5))
    DEFAULT_CUSTOMER_CREDIT_DAYS = int(os.environ.get('DEFAULT_CUSTOMER_CREDIT_DAYS', 30))
    DISPLAY_TIMEZONE = os.environ.get('DISPLAY_TIMEZONE', 'Africa/Cairo')

    # Listing
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100


class DevConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')

    # Development database - SQLite with fallback
    STORAGE_PATH = str(Path(__file__).resolve().parents[1] / "tourops-storage" / "database")
    DB_PATH = os.path.join(STORAGE_PATH, 'tourops.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI', f"sqlite:///{DB_PATH}")


class TestConfig(Config):
    """Test configuration - in-memory database, console logging only"""
    TESTING = True
    LOG_TO_FILE = False
    LOG_LEVEL = 'WARNING'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    DISPLAY_TIMEZONE = 'Africa/Cairo'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False

    # Production database - MUST be set via environment
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI')
