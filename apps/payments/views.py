import stripe
import structlog
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from apps.bookings.application.command_handlers import ConfirmPaymentCommand, ConfirmPaymentHandler
from shared.domain.exceptions import DomainError, PaidSlotConflict, PaymentIncomplete, UpstreamError

logger = structlog.get_logger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300
SESSION_COMPLETED = "checkout.session.completed"


@csrf_exempt
@require_POST
def stripe_webhook(request):
    """
    Provider notification that a checkout session finished

    Duplicate deliveries resolve to the booking created the first time.
    A paid slot lost to another booking is acknowledged (the provider must
    not retry it) and left for manual refund; provider errors answer 502
    so the delivery is retried.
    """
    secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
    if not secret:
        logger.error("webhook.secret_missing")
        return JsonResponse(
            {"error": "invalid_signature", "detail": "Webhook secret is not configured"}, status=400
        )

    try:
        event = stripe.Webhook.construct_event(
            request.body,
            request.headers.get("Stripe-Signature", ""),
            secret,
            tolerance=SIGNATURE_TOLERANCE_SECONDS,
        )
    except ValueError:
        logger.error("webhook.invalid_json")
        return JsonResponse({"error": "invalid_json"}, status=400)
    except stripe.SignatureVerificationError as exc:
        logger.warning("webhook.invalid_signature", reason=str(exc))
        return JsonResponse({"error": "invalid_signature", "detail": str(exc)}, status=400)

    event_type = event.get("type")
    if event_type != SESSION_COMPLETED:
        logger.info("webhook.ignored", event_type=event_type, event_id=event.get("id"))
        return JsonResponse({"received": True})

    session = (event.get("data") or {}).get("object") or {}
    session_id = session.get("id")
    user_id = (session.get("metadata") or {}).get("userId")
    log = logger.bind(event_id=event.get("id"), session_id=session_id, user_id=user_id)

    if not session_id or not user_id:
        log.error("webhook.missing_session_fields")
        return JsonResponse({"error": "invalid_event", "detail": "Session id or user missing"}, status=400)

    try:
        result = ConfirmPaymentHandler().handle(ConfirmPaymentCommand(session_id=session_id, user_id=user_id))
    except PaidSlotConflict as exc:
        log.error("webhook.paid_slot_conflict", **exc.context)
        return JsonResponse({"received": True, "error": exc.code})
    except PaymentIncomplete:
        log.info("webhook.payment_pending")
        return JsonResponse({"received": True, "status": "payment_pending"})
    except UpstreamError as exc:
        log.error("webhook.upstream_error", detail=exc.message)
        return JsonResponse(exc.to_dict(), status=exc.status_code)
    except DomainError as exc:
        log.error("webhook.rejected", error=exc.code, detail=exc.message)
        return JsonResponse(exc.to_dict(), status=400)

    log.info("webhook.confirmed", booking_id=result.booking.pk, created=result.created)
    return JsonResponse({"received": True, "booking_id": result.booking.pk, "created": result.created})
