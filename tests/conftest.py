"""Test environment: in-memory SQLite and cheap bcrypt, set before beershop is imported."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "dev"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
