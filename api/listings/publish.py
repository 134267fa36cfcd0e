"""Publish endpoint - sync one location with the provider."""

import logging
from src.services.listing_actions import run_publish
from src.utils.logging_config import LoggingConfig
from src.utils.responses import get_agency_id, json_response, parse_body, run_coroutine

LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)


def handler(request):
    """
    Publish a location.

    Body: {"location_id": "..."}. The agency comes from the X-Agency-ID header.
    """
    try:
        agency_id = get_agency_id(request)
        location_id = parse_body(request).get("location_id")
        if not agency_id or not location_id:
            return json_response(400, {"error": "agency and location_id are required"})

        result = run_coroutine(run_publish(agency_id, location_id))
        return json_response(200, result.model_dump(mode="json"))

    except Exception as e:
        logger.error(f"Error publishing location: {e}", exc_info=True)
        return json_response(500, {"error": "internal server error"})
