from __future__ import annotations

from typing import TYPE_CHECKING

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from threadnotes.config import Settings

logger = get_logger(__name__)


def create_supabase_client(settings: Settings) -> Client:
    """Create the Supabase client used by the thread and note repositories.

    Prefers the service role key: the thread store has no per-user rows, and the
    enrichment job writes outside any request. Falls back to the anon key.
    """
    if not settings.supabase_url:
        raise RuntimeError("supabase_url is required when store_backend is 'supabase'")
    key = settings.supabase_service_role_key or settings.supabase_anon_key
    if not key:
        raise RuntimeError("supabase_service_role_key or supabase_anon_key is required")

    logger.debug(
        "Initializing Supabase client (%s key)",
        "service role" if settings.supabase_service_role_key else "anon",
    )
    return create_client(
        settings.supabase_url,
        key,
        options=ClientOptions(auto_refresh_token=False, persist_session=False),
    )
