#!/usr/bin/env python

"""
    Configurations for Lendable

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import os


# Determine environment
TESTING = os.getenv("TESTING", "false").lower() == "true"

# API server configuration
HOST = os.environ.get('LENDABLE_HOST', 'localhost')
PORT = int(os.environ.get('LENDABLE_PORT', 8080))
WORKERS = int(os.environ.get('LENDABLE_WORKERS', 1))
DEBUG = bool(int(os.environ.get('LENDABLE_DEBUG', 0)))
LOG_LEVEL = os.environ.get('LENDABLE_LOG_LEVEL', 'info')
SSL_CRT = os.environ.get('LENDABLE_SSL_CRT')
SSL_KEY = os.environ.get('LENDABLE_SSL_KEY')
CORS_ORIGINS = os.environ.get('LENDABLE_CORS_ORIGINS', 'http://localhost:3000').split(',')

# Shared with the identity service which signs principal tokens
SEED = os.environ.get('LENDABLE_SEED', 'lendable-dev-seed')
TOKEN_TTL = int(os.environ.get('LENDABLE_TOKEN_TTL', 86400))

# Seconds a tenant's policy may be served from cache after an admin edit
POLICY_TTL = int(os.environ.get('LENDABLE_POLICY_TTL', 60))

OPTIONS = {
    'host': HOST,
    'port': PORT,
    'log_level': LOG_LEVEL,
    'reload': DEBUG,
    'workers': WORKERS,
}
if SSL_CRT and SSL_KEY:
    OPTIONS['ssl_keyfile'] = SSL_KEY
    OPTIONS['ssl_certfile'] = SSL_CRT

DB_CONFIG = {
    'user': os.environ.get('DB_USER', 'postgres'),
    'password': os.environ.get('DB_PASSWORD'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': int(os.environ.get('DB_PORT', '5432')),
    'dbname': os.environ.get('DB_NAME', 'lendable'),
}

# Database configuration
DB_URI = (
    "sqlite:///:memory:" if TESTING else
    'postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}'.format(**DB_CONFIG)
)

# Policy applied to tenants that have no stored policy row
DEFAULT_POLICY = {
    'lending_duration_days': int(os.environ.get('LENDABLE_LENDING_DAYS', 14)),
    'max_renewals': int(os.environ.get('LENDABLE_MAX_RENEWALS', 2)),
    'late_penalty_per_day': float(os.environ.get('LENDABLE_LATE_FEE_PER_DAY', 1.0)),
    'lost_item_fee': float(os.environ.get('LENDABLE_LOST_ITEM_FEE', 50.0)),
    'damaged_item_fee': float(os.environ.get('LENDABLE_DAMAGED_ITEM_FEE', 25.0)),
    'max_items_per_user': int(os.environ.get('LENDABLE_MAX_ITEMS_PER_USER', 5)),
    'require_approval': os.environ.get('LENDABLE_REQUIRE_APPROVAL', 'false').lower() == 'true',
    'auto_blacklist_enabled': os.environ.get('LENDABLE_AUTO_BLACKLIST', 'true').lower() == 'true',
}

__all__ = [
    'HOST', 'PORT', 'DEBUG', 'OPTIONS', 'DB_URI', 'DB_CONFIG',
    'TESTING', 'SEED', 'TOKEN_TTL', 'POLICY_TTL', 'DEFAULT_POLICY', 'CORS_ORIGINS',
]
