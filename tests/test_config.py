from __future__ import annotations

from memory_grove_tracker.backend.local import LocalBackend
from memory_grove_tracker.backend.polling import PollingChangeFeed
from memory_grove_tracker.backend.supabase_rest import SupabaseRestClient
from memory_grove_tracker.config import BackendSettings, build_backend, load_backend_settings


def test_secrets_take_precedence_over_environment() -> None:
    settings = load_backend_settings(
        env={"SUPABASE_URL": "https://env.supabase.co", "SUPABASE_ANON_KEY": "env-key"},
        secrets={"SUPABASE_URL": " https://secret.supabase.co "},
    )

    assert settings.supabase_url == "https://secret.supabase.co"
    assert settings.supabase_anon_key == "env-key"
    assert settings.uses_supabase is True


def test_frontend_style_variable_names_are_accepted() -> None:
    settings = load_backend_settings(
        env={
            "NEXT_PUBLIC_SUPABASE_URL": "https://demo.supabase.co",
            "NEXT_PUBLIC_SUPABASE_ANON_KEY": "anon",
            "MEMORY_GROVE_POLL_SECONDS": "2.5",
        },
        secrets={},
    )

    assert settings.supabase_url == "https://demo.supabase.co"
    assert settings.poll_seconds == 2.5


def test_invalid_numbers_fall_back_to_defaults() -> None:
    settings = load_backend_settings(env={"MEMORY_GROVE_HTTP_TIMEOUT": "soon"}, secrets={})

    assert settings.http_timeout == BackendSettings().http_timeout
    assert settings.uses_supabase is False


def test_build_backend_with_credentials_uses_rest_and_polling() -> None:
    bundle = build_backend(BackendSettings(supabase_url="https://demo.supabase.co", supabase_anon_key="anon"))

    assert bundle.mode == "supabase"
    assert isinstance(bundle.collections, SupabaseRestClient)
    assert isinstance(bundle.feed, PollingChangeFeed)


def test_build_backend_without_credentials_seeds_local_file(tmp_path) -> None:
    bundle = build_backend(BackendSettings(data_dir=str(tmp_path)))

    assert bundle.mode == "local"
    assert isinstance(bundle.collections, LocalBackend)
    assert bundle.feed is bundle.collections
    assert len(bundle.collections.fetch_all("inventory_items")) == 4
    assert bundle.collections.path.is_file()

    reopened = build_backend(BackendSettings(data_dir=str(tmp_path)))
    assert len(reopened.collections.fetch_all("inventory_items")) == 4
