# backend/medistock/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/medistock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///medistock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pack threshold used by the low-stock report when the caller gives none
    LOW_STOCK_MIN_PACKS = int(os.environ.get("LOW_STOCK_MIN_PACKS", "20"))

    # Row cap for the recent sales register
    REPORT_ROW_LIMIT = int(os.environ.get("REPORT_ROW_LIMIT", "50"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
