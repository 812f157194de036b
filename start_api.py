#!/usr/bin/env python3
"""
Wait for Postgres, run migrations (same DATABASE_URL), seed, then uvicorn.
Ensures tables exist before seed and app start.
"""
import os
import sys

# 1) Wait for DB
import wait_for_db  # noqa: F401

# 2) Run migrations using the same settings as the app
from felka.core.config import settings
from alembic.config import Config
from alembic import command

alembic_cfg = Config(os.path.join(os.path.dirname(__file__), "alembic.ini"))
alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
command.upgrade(alembic_cfg, "head")

# 3) Seed users and the first two weeks of slots
from felka.seed import run as run_seed
run_seed()

# 4) Start uvicorn (replace current process); tables come from migrations here
os.environ["AUTO_CREATE_TABLES"] = "false"
os.execv(
    sys.executable,
    [sys.executable, "-m", "uvicorn", "felka.main:app", "--host", "0.0.0.0", "--port", "8000"],
)
