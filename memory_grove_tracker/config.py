from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Literal, Mapping, Optional, Sequence

import streamlit as st
from streamlit.errors import StreamlitSecretNotFoundError

from memory_grove_tracker.backend.base import ChangeFeed, CollectionBackend
from memory_grove_tracker.backend.local import DATA_DIR_VARIABLE, LocalBackend, resolve_data_file_path
from memory_grove_tracker.backend.polling import PollingChangeFeed
from memory_grove_tracker.backend.supabase_rest import SupabaseCredentials, SupabaseRestClient
from memory_grove_tracker.constants import DEFAULT_HTTP_TIMEOUT, DEFAULT_POLL_SECONDS

LOGGER = logging.getLogger(__name__)

URL_KEYS: tuple[str, ...] = ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
ANON_KEY_KEYS: tuple[str, ...] = ("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY", "SUPABASE_KEY")
ACCESS_TOKEN_KEYS: tuple[str, ...] = ("SUPABASE_ACCESS_TOKEN",)
POLL_SECONDS_KEYS: tuple[str, ...] = ("MEMORY_GROVE_POLL_SECONDS",)
HTTP_TIMEOUT_KEYS: tuple[str, ...] = ("MEMORY_GROVE_HTTP_TIMEOUT",)


@dataclass(frozen=True)
class BackendSettings:
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    access_token: Optional[str] = None
    data_dir: Optional[str] = None
    poll_seconds: float = DEFAULT_POLL_SECONDS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @property
    def uses_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@dataclass(frozen=True)
class BackendBundle:
    """Collection client and change feed the views are composed with."""

    collections: CollectionBackend
    feed: ChangeFeed
    mode: Literal["supabase", "local"]


def _streamlit_secret(name: str) -> Optional[str]:
    try:
        value = st.secrets.get(name)
    except (StreamlitSecretNotFoundError, FileNotFoundError):
        return None
    if value:
        return str(value)
    return None


def _get_secret(name: str, *, env: Mapping[str, str], secrets: Mapping[str, object] | None) -> Optional[str]:
    if secrets is not None:
        value = secrets.get(name)
        if value:
            return str(value)
    else:
        secret_value = _streamlit_secret(name)
        if secret_value:
            return secret_value
    env_value = env.get(name)
    if env_value:
        return str(env_value)
    return None


def _first_secret(
    keys: Sequence[str], *, env: Mapping[str, str], secrets: Mapping[str, object] | None
) -> Optional[str]:
    for key in keys:
        value = _get_secret(key, env=env, secrets=secrets)
        if value:
            return value.strip()
    return None


def _float_setting(raw: Optional[str], default: float, *, name: str) -> float:
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def load_backend_settings(
    *, env: Mapping[str, str] | None = None, secrets: Mapping[str, object] | None = None
) -> BackendSettings:
    """Read backend credentials from Streamlit secrets first, then the environment."""

    env_map: Mapping[str, str] = env if env is not None else os.environ
    return BackendSettings(
        supabase_url=_first_secret(URL_KEYS, env=env_map, secrets=secrets),
        supabase_anon_key=_first_secret(ANON_KEY_KEYS, env=env_map, secrets=secrets),
        access_token=_first_secret(ACCESS_TOKEN_KEYS, env=env_map, secrets=secrets),
        data_dir=_first_secret((DATA_DIR_VARIABLE,), env=env_map, secrets=secrets),
        poll_seconds=_float_setting(
            _first_secret(POLL_SECONDS_KEYS, env=env_map, secrets=secrets),
            DEFAULT_POLL_SECONDS,
            name="MEMORY_GROVE_POLL_SECONDS",
        ),
        http_timeout=_float_setting(
            _first_secret(HTTP_TIMEOUT_KEYS, env=env_map, secrets=secrets),
            DEFAULT_HTTP_TIMEOUT,
            name="MEMORY_GROVE_HTTP_TIMEOUT",
        ),
    )


def build_backend(settings: BackendSettings) -> BackendBundle:
    """Construct the backend once for the application's root scope."""

    url, anon_key = settings.supabase_url, settings.supabase_anon_key
    if url and anon_key:
        client = SupabaseRestClient(
            SupabaseCredentials(
                url=url,
                anon_key=anon_key,
                access_token=settings.access_token,
            ),
            timeout=settings.http_timeout,
        )
        LOGGER.info("Using Supabase backend at %s", url)
        return BackendBundle(
            collections=client,
            feed=PollingChangeFeed(client, interval=settings.poll_seconds),
            mode="supabase",
        )

    data_env = {DATA_DIR_VARIABLE: settings.data_dir} if settings.data_dir else {}
    local = LocalBackend(resolve_data_file_path(env=data_env))
    if local.created_fresh:
        local.seed_defaults()
    LOGGER.info("No Supabase credentials found; using local data file %s", local.path)
    return BackendBundle(collections=local, feed=local, mode="local")


__all__ = ["BackendBundle", "BackendSettings", "build_backend", "load_backend_settings"]
