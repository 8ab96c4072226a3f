# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite unless DATABASE_URL is given (CI can point this at Postgres
  to exercise the SELECT ... FOR UPDATE race tests).
- Fast password hashing.
- Quiet logging.
"""

from __future__ import annotations

import os

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = False

if os.environ.get("DATABASE_URL"):
    DATABASES = {"default": env.db("DATABASE_URL")}
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": ":memory:",
        }
    }

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

for _name in ("inventory", "purchases", "numbering"):
    LOGGING["loggers"][_name]["level"] = "CRITICAL"
