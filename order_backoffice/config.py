from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR.parent / DATA_DIR
DB_PATH = Path(os.environ.get("ORDER_BACKOFFICE_DB", DATA_PATH / DB_FILE_NAME))

# Recipient env key per order collection.
EMAIL_TO_ENV_KEYS = {
    "default": "CONTACT_EMAIL_TO",
    "kalaba": "CONTACT_EMAIL_TO_2",
}


@dataclass(frozen=True)
class SmtpSettings:
    host: str | None
    port: int | None
    user: str | None
    password: str | None
    sender: str | None
    sender_name: str | None
    to: str | None
    to_env_key: str = "CONTACT_EMAIL_TO"

    @classmethod
    def from_env(cls, to_env_key: str = "CONTACT_EMAIL_TO", environ=None) -> "SmtpSettings":
        env = os.environ if environ is None else environ
        raw_port = (env.get("CONTACT_SMTP_PORT") or "").strip()
        try:
            port = int(raw_port) if raw_port else None
        except ValueError:
            port = None
        return cls(
            host=env.get("CONTACT_SMTP_HOST") or None,
            port=port,
            user=env.get("CONTACT_SMTP_USER") or None,
            password=env.get("CONTACT_SMTP_PASS") or None,
            sender=env.get("CONTACT_EMAIL_FROM") or None,
            sender_name=env.get("CONTACT_EMAIL_FROM_NAME") or None,
            to=env.get(to_env_key) or None,
            to_env_key=to_env_key,
        )

    def missing(self) -> list[str]:
        """Names of required environment variables that are not set."""
        required = [
            ("CONTACT_SMTP_HOST", self.host),
            ("CONTACT_SMTP_PORT", self.port),
            ("CONTACT_SMTP_USER", self.user),
            ("CONTACT_SMTP_PASS", self.password),
            ("CONTACT_EMAIL_FROM", self.sender),
            (self.to_env_key, self.to),
        ]
        return [name for name, value in required if not value]

    @property
    def recipients(self) -> list[str]:
        parts = (self.to or "").replace(";", ",").split(",")
        return [p.strip() for p in parts if p.strip()]

# Structured mutation log (JSON lines)
LOG_PATH = DATA_PATH / "logs" / "orders.jsonl"
