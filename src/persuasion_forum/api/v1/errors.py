"""Translation of service errors into HTTP errors."""

import logging

from fastapi import HTTPException, status

from persuasion_forum.services.supabase import SupabaseError

logger = logging.getLogger(__name__)


def upstream_error(exc: SupabaseError) -> HTTPException:
    """Return the HTTP error reported when the hosted backend fails."""
    logger.warning("Hosted backend call failed: %s", exc)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
