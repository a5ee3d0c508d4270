"""Pending-queue drain endpoint (can be called via Vercel cron)."""

import logging

from api._shared import error_response, json_response, run_async
from taskdesk.services.scheduler import get_scheduler_session
from taskdesk.utils.logging import correlation_context

logger = logging.getLogger(__name__)


def handler(request):
    """
    Drain the pending queue until no free agent can take more work.

    Can be called manually or via Vercel cron job.
    """
    with correlation_context() as correlation_id:
        try:
            query_params = request.get("query", {}) or {}
            raw_passes = query_params.get("max_passes")
            max_passes = int(raw_passes) if raw_passes not in (None, "") else None
            if max_passes is not None and max_passes < 1:
                return json_response(400, {"error": "max_passes must be at least 1", "code": "invalid_request"})

            assigned = run_async(get_scheduler_session().drain_until_stable(max_passes))

            return json_response(200, {
                "ok": True,
                "assigned": assigned,
                "correlation_id": correlation_id,
            })
        except ValueError:
            return json_response(400, {"error": "max_passes must be an integer", "code": "invalid_request"})
        except Exception as e:
            logger.error(f"Error draining pending queue: {e}", exc_info=True)
            return error_response(e)
