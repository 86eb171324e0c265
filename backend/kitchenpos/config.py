# backend/kitchenpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/kitchenpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kitchenpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Store settings JSON; relative paths resolve against the instance folder
    SETTINGS_PATH = os.environ.get("KITCHENPOS_SETTINGS_PATH", "settings.json")

    # Comma-separated dashboard origins allowed to call the API
    CORS_ORIGINS = os.environ.get(
        "KITCHENPOS_CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )
