"""Bulk-upload CSV export endpoint."""

import logging
from src.services.listing_actions import export_pending_upload_csv
from src.utils.logging_config import LoggingConfig
from src.utils.responses import get_agency_id, json_response, run_coroutine

LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)


def handler(request):
    """Download every location waiting for upload as a provider bulk CSV."""
    try:
        agency_id = get_agency_id(request)
        if not agency_id:
            return json_response(400, {"error": "agency is required"})

        result = run_coroutine(export_pending_upload_csv(agency_id))
        if not result.success:
            return json_response(404, result.model_dump(mode="json"))

        return {
            "statusCode": 200,
            "headers": {
                "Content-Type": "text/csv; charset=utf-8",
                "Content-Disposition": f'attachment; filename="{result.data["filename"]}"',
                "Cache-Control": "no-store, no-cache, must-revalidate",
            },
            "body": result.data["content"],
        }

    except Exception as e:
        logger.error(f"Error exporting CSV: {e}", exc_info=True)
        return json_response(500, {"error": "internal server error"})
