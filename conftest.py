"""
Root conftest.py for the OptiId registry service.

Sets test environment variables BEFORE any application module is imported,
since ``optiid.config.settings`` is read once at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORE_TIMEOUT_SECONDS"] = "1.0"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_JSON"] = "false"
os.environ["ADMIN_ADDRESS"] = "0xad00000000000000000000000000000000000001"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["REGISTRY_ADDRESS"] = "0x4e6700000000000000000000000000000000beef"
os.environ["REGISTRATION_FEE"] = "1000"
os.environ["MAX_DOMAINS_PER_USER"] = "5"
os.environ["ALLOCATE_RATE_LIMIT_REQUESTS"] = "1000"
os.environ["CORS_ORIGINS"] = "http://localhost:3000"
