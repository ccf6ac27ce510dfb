"""
Configuration for the Google Workspace to Coder sync, read from the environment
"""

import os
import logging
from dataclasses import dataclass

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


# Environment variable name -> placeholder default.
# The defaults only allow a dry configuration; every deployment overrides them.
DEFAULTS = {
    # Must be an admin of the Google Workspace
    "CODER_G_ADMIN_EMAIL": "alice@example.com",
    "CODER_G_SYNC_DOMAIN": "example.com",
    "CODER_G_SYNC_CREDS_FILEPATH": os.path.join(os.path.expanduser("~"), "coder", "google-credentials.json"),
    "CODER_G_SYNC_CODER_URL": "https://coder.example.com",
    # Session token of an owner account
    "CODER_G_SYNC_SESSION_TOKEN": "APM...w",
    # https://support.google.com/a/answer/10070793
    "CODER_G_SYNC_CUSTOMER_ID": "G25a24h2h",
    "SYNC_DRY_RUN": "false",
    "SYNC_LOG_LEVEL": "INFO",
    "CODER_G_SYNC_TIMEOUT": "30",
}

SECRET_VARS = {"CODER_G_SYNC_SESSION_TOKEN"}


def take_env_var(key: str) -> str:
    """Return the environment value for key, or its placeholder default."""
    value = os.getenv(key)
    if value is None:
        return DEFAULTS[key]
    return value


@dataclass
class SyncConfig:
    """Settings for one sync run."""

    admin_email: str
    domain: str
    credentials_file: str
    coder_url: str
    session_token: str
    customer_id: str
    dry_run: bool = False
    log_level: str = "INFO"
    timeout: float = 30.0

    def masked(self) -> dict:
        """Settings as a dict with secrets hidden, for display."""
        token = self.session_token
        return {
            "admin_email": self.admin_email,
            "domain": self.domain,
            "credentials_file": self.credentials_file,
            "coder_url": self.coder_url,
            "session_token": f"{token[:3]}***" if token else "",
            "customer_id": self.customer_id,
            "dry_run": self.dry_run,
            "log_level": self.log_level,
            "timeout": self.timeout,
        }


def load_config(env_file: str = None) -> SyncConfig:
    """Load the sync configuration from the environment (and a .env file if present)."""
    load_dotenv(env_file)

    timeout = take_env_var("CODER_G_SYNC_TIMEOUT")
    try:
        timeout = float(timeout)
    except ValueError:
        logger.warning(f"Invalid CODER_G_SYNC_TIMEOUT {timeout!r}, using {DEFAULTS['CODER_G_SYNC_TIMEOUT']}")
        timeout = float(DEFAULTS["CODER_G_SYNC_TIMEOUT"])

    return SyncConfig(
        admin_email=take_env_var("CODER_G_ADMIN_EMAIL"),
        domain=take_env_var("CODER_G_SYNC_DOMAIN"),
        credentials_file=take_env_var("CODER_G_SYNC_CREDS_FILEPATH"),
        coder_url=take_env_var("CODER_G_SYNC_CODER_URL"),
        session_token=take_env_var("CODER_G_SYNC_SESSION_TOKEN"),
        customer_id=take_env_var("CODER_G_SYNC_CUSTOMER_ID"),
        dry_run=take_env_var("SYNC_DRY_RUN").lower() == "true",
        log_level=take_env_var("SYNC_LOG_LEVEL").upper(),
        timeout=timeout,
    )


def unset_variables() -> list:
    """Names of the variables that are still on their placeholder default."""
    return [key for key in DEFAULTS if os.getenv(key) is None]
