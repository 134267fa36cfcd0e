"""Connectivity test endpoint - check provider access for the current agency."""

import logging
from src.services.listing_actions import run_connectivity_test
from src.utils.logging_config import LoggingConfig
from src.utils.responses import get_agency_id, json_response, run_coroutine

LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)


def handler(request):
    """Run the connectivity probe for the agency in the X-Agency-ID header."""
    try:
        agency_id = get_agency_id(request)
        if not agency_id:
            return json_response(400, {"error": "agency is required"})

        result = run_coroutine(run_connectivity_test(agency_id))
        return json_response(200, result.model_dump(mode="json"))

    except Exception as e:
        logger.error(f"Error running connectivity test: {e}", exc_info=True)
        return json_response(500, {"error": "internal server error"})
