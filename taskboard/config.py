import os
from dataclasses import dataclass

@dataclass(frozen=True)
class Settings:
    app_env = os.getenv("APP_ENV", "prod")

    database_url = os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg://taskboard:taskboard_pass_change_me@db:5432/taskboard",
    )

    session_secret = os.getenv("SESSION_SECRET", "change_me")
    bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "12"))

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    admin_email = os.getenv("ADMIN_EMAIL", "admin@local")
    admin_password = os.getenv("ADMIN_PASSWORD", "admin")
    admin_name = os.getenv("ADMIN_NAME", "Admin")
    admin_update = os.getenv("ADMIN_UPDATE", "0") == "1"

settings = Settings()
