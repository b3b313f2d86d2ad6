"""
Database credential resolution.

When `CLOUD_SQL_CREDENTIALS_SECRET` names a Secret Manager secret version, the
database password is fetched from Google Secret Manager and overlaid on a copy
of the settings before any connection attempt. Otherwise the statically
configured `DB_PASSWORD` is used as-is.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager

from money_tracker.config import Settings
from money_tracker.errors import SecretFetchError, SecretFormatError
from money_tracker.utils.logging import get_logger

log = get_logger(__name__)

_VERSION_NAME = re.compile(
    r"^projects/[^/]+/(?:locations/(?P<location>[^/]+)/)?secrets/[^/]+/versions/[^/]+$"
)


def _client_options(location: Optional[str]) -> Optional[Dict[str, str]]:
    # regional secrets are only served by their regional endpoint
    if location is None:
        return None
    return {"api_endpoint": f"secretmanager.{location}.rep.googleapis.com"}


async def access_secret_version(
    secret_name: str,
    client: Optional[secretmanager.SecretManagerServiceAsyncClient] = None,
) -> bytes:
    """
    Return the raw payload of a secret version.

    Both global and regional (`projects/<p>/locations/<l>/...`) version names
    are accepted. A client created here is closed before returning.

    Raises
    ------
    SecretFetchError
        If the name is malformed or the Secret Manager call fails.
    """
    match = _VERSION_NAME.match(secret_name)
    if match is None:
        raise SecretFetchError(
            f"Invalid secret reference {secret_name!r}; expected "
            "projects/<project>/[locations/<location>/]secrets/<secret>/versions/<version>"
        )
    try:
        if client is not None:
            response = await client.access_secret_version(name=secret_name)
        else:
            async with secretmanager.SecretManagerServiceAsyncClient(
                client_options=_client_options(match.group("location"))
            ) as owned:
                response = await owned.access_secret_version(name=secret_name)
    except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
        raise SecretFetchError(f"Unable to access secret {secret_name!r}: {exc}") from exc
    return response.payload.data


def decode_password(payload: bytes) -> str:
    """Decode a secret payload into a password string."""
    try:
        password = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SecretFormatError(
            f"Unable to parse secret from Secret Manager; payload is not UTF-8 text: {exc}"
        ) from exc
    # `gcloud secrets create --data-file=-` keeps the newline from `echo`
    if password.endswith("\n"):
        password = password[:-1]
    if not password:
        raise SecretFormatError("Secret Manager returned an empty password")
    return password


async def resolve_credentials(
    settings: Settings,
    client: Optional[secretmanager.SecretManagerServiceAsyncClient] = None,
) -> Settings:
    """
    Return the settings with the effective database password applied.

    Parameters
    ----------
    settings : Settings
        Process configuration, left untouched.
    client : SecretManagerServiceAsyncClient | None
        Injected client; a default client is created when omitted.

    Returns
    -------
    Settings
        `settings` itself when no secret is configured, otherwise a copy whose
        `db_password` holds the secret value.
    """
    if not settings.db_password_secret:
        log.debug("No credentials secret configured; using DB_PASSWORD")
        return settings

    log.info(
        "Resolving database password from Secret Manager",
        extra={"secret": settings.db_password_secret},
    )
    payload = await access_secret_version(settings.db_password_secret, client=client)
    return settings.model_copy(update={"db_password": decode_password(payload)})


__all__ = ["access_secret_version", "decode_password", "resolve_credentials"]
