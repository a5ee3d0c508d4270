"""Database change webhook: re-run reconciliation when agents or tasks change."""

import logging

from api._shared import error_response, header, json_response, parse_body, run_async
from taskdesk.services.change_feed import parse_webhook_payload
from taskdesk.services.scheduler import get_scheduler_session
from taskdesk.services.webhook_verifier import verify_webhook_request
from taskdesk.utils.logging import correlation_context

logger = logging.getLogger(__name__)


def handler(request):
    """Receives Supabase database webhooks (header `x-webhook-secret`)."""
    if not verify_webhook_request(header(request, "x-webhook-secret")):
        return json_response(401, {"error": "invalid webhook secret", "code": "webhook_verification_failed"})

    event = parse_webhook_payload(parse_body(request))
    if event is None:
        return json_response(400, {"error": "unrecognised webhook payload", "code": "invalid_request"})

    with correlation_context():
        try:
            session = get_scheduler_session()

            async def process():
                await session.feed.publish(event)
                return await session.drain_until_stable()

            assigned = run_async(process())
            logger.info(f"Change webhook processed: table={event.table} kind={event.kind.value} assigned={assigned}")
            return json_response(200, {"ok": True, "assigned": assigned})
        except Exception as e:
            logger.error(f"Error processing change webhook: {e}", exc_info=True)
            return error_response(e)
