"""Reconciliation endpoint (can be called via Vercel cron)."""

import logging
from src.services.listing_actions import run_reconciliation
from src.utils.logging_config import LoggingConfig
from src.utils.responses import get_agency_id, json_response, run_coroutine

LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)


def handler(request):
    """
    Poll provider state for an agency's listings and correct drift.

    Can be called manually or via Vercel cron job with ?agency_id=...
    """
    try:
        agency_id = get_agency_id(request)
        if not agency_id:
            return json_response(400, {"error": "agency is required"})

        result = run_coroutine(run_reconciliation(agency_id))
        return json_response(200, result.model_dump(mode="json"))

    except Exception as e:
        logger.error(f"Error running reconciliation: {e}", exc_info=True)
        return json_response(500, {"error": "internal server error"})
