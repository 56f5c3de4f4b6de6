"""
Database credential resolution.

Credentials come from one of two places:
- local environment variables (DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME)
- an AWS Secrets Manager secret, when USE_SECRETS_MANAGER=true

The first successful resolution is cached for the life of the process.
"""

import json
import os
import threading
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from student_records.errors import ConfigurationError
from student_records.logging_config import get_logger, log_with_context

logger = get_logger("config")

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3306
DEFAULT_USER = "root"
DEFAULT_DATABASE = "student_records"
DEFAULT_AWS_REGION = "us-east-1"

_credentials: Optional["Credentials"] = None
_lock = threading.Lock()


@dataclass(frozen=True)
class Credentials:
    host: str
    port: int
    username: str
    password: str
    database: str

    def __repr__(self):
        # Never render the password into logs or tracebacks
        return (f"Credentials(host={self.host!r}, port={self.port}, "
                f"username={self.username!r}, database={self.database!r})")


def use_secrets_manager() -> bool:
    return os.getenv("USE_SECRETS_MANAGER", "false").strip().lower() == "true"


def _parse_port(value, source: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{source} port is not an integer: {value!r}")
    if port <= 0:
        raise ConfigurationError(f"{source} port must be positive: {port}")
    return port


def credentials_from_env() -> Credentials:
    """Read the five DB_* variables, falling back to local defaults."""
    return Credentials(
        host=os.getenv("DB_HOST", DEFAULT_HOST),
        port=_parse_port(os.getenv("DB_PORT", str(DEFAULT_PORT)), "DB_PORT"),
        username=os.getenv("DB_USER", DEFAULT_USER),
        password=os.getenv("DB_PASSWORD", ""),
        database=os.getenv("DB_NAME", DEFAULT_DATABASE),
    )


def credentials_from_secret(secret_string: Optional[str]) -> Credentials:
    """
    Parse a Secrets Manager SecretString into Credentials.

    The secret must be a JSON object with at least `host` and `username`.
    `port` defaults to 3306 and `database` (or `dbname`) to the default
    database name.

    Raises:
        ConfigurationError: if the secret is empty or malformed
    """
    if not secret_string:
        raise ConfigurationError("Secret string is empty")
    try:
        secret = json.loads(secret_string)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Secret string is not valid JSON: {e.msg}") from e
    if not isinstance(secret, dict):
        raise ConfigurationError("Secret string must be a JSON object")

    missing = [key for key in ("host", "username") if not secret.get(key)]
    if missing:
        raise ConfigurationError(f"Secret is missing required keys: {', '.join(missing)}")

    return Credentials(
        host=secret["host"],
        port=_parse_port(secret.get("port") or DEFAULT_PORT, "Secret"),
        username=secret["username"],
        password=secret.get("password") or "",
        database=secret.get("database") or secret.get("dbname") or DEFAULT_DATABASE,
    )


def fetch_secret_credentials() -> Credentials:
    """
    Look up the database secret in AWS Secrets Manager.

    The secret id comes from DB_SECRET_ARN (or AWS_SECRET_NAME) and the
    region from AWS_REGION. Lookup failures are not retried.
    """
    secret_id = os.getenv("DB_SECRET_ARN") or os.getenv("AWS_SECRET_NAME")
    if not secret_id:
        raise ConfigurationError("USE_SECRETS_MANAGER is set but DB_SECRET_ARN is not")
    region = os.getenv("AWS_REGION", DEFAULT_AWS_REGION)

    log_with_context(logger, "INFO", "Fetching database credentials from Secrets Manager",
                     extra_data={"secret_id": secret_id, "region": region})
    try:
        client = boto3.client("secretsmanager", region_name=region)
        response = client.get_secret_value(SecretId=secret_id)
    except (BotoCoreError, ClientError) as e:
        log_with_context(logger, "ERROR", f"Secrets Manager lookup failed: {e}",
                         extra_data={"secret_id": secret_id, "region": region})
        raise ConfigurationError(f"Could not read secret {secret_id}: {e}") from e

    return credentials_from_secret(response.get("SecretString"))


def resolve_credentials() -> Credentials:
    """
    Return the process-wide database credentials, resolving them on first use.

    Raises:
        ConfigurationError: if the credentials cannot be resolved
    """
    global _credentials
    if _credentials is not None:
        return _credentials
    with _lock:
        if _credentials is None:
            if use_secrets_manager():
                credentials = fetch_secret_credentials()
                source = "secrets_manager"
            else:
                credentials = credentials_from_env()
                source = "environment"
            log_with_context(logger, "INFO", f"Database credentials resolved from {source}",
                             extra_data={"host": credentials.host, "port": credentials.port,
                                         "user": credentials.username,
                                         "database": credentials.database})
            _credentials = credentials
    return _credentials


def clear_credentials_cache() -> None:
    """Forget cached credentials so the next call resolves them again."""
    global _credentials
    with _lock:
        _credentials = None
