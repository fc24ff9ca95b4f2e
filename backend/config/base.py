"""Shared configuration for the QR attendance service."""
import os
from datetime import timedelta


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT issued by the identity provider, verified with a shared secret
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'
    JWT_ROLE_CLAIM = 'role'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "https://*.vercel.app", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"
    SCAN_RATE_LIMIT = "30 per minute"

    # QR broadcast
    QR_TOKEN_SECRET = os.environ.get('QR_TOKEN_SECRET') or SECRET_KEY
    QR_ROTATION_INTERVAL_SECONDS = 5
    QR_TOKEN_TTL_SECONDS = 15  # grace window = TTL - rotation interval
    QR_IDLE_TIMEOUT_SECONDS = 15 * 60
    QR_AUTO_ROTATE = True

    # Marking window, minutes around the scheduled start
    EARLY_SCAN_MINUTES = 15
    PRESENT_THRESHOLD_MINUTES = 10
    LATE_THRESHOLD_MINUTES = 20
    CLASS_TIMEZONE = os.environ.get('CLASS_TIMEZONE', 'UTC')

    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'
