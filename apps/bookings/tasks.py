"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import DomainError

from .models import Booking

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (Celery Beat)
# ============================================================================

@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Move confirmed bookings whose stay has ended to COMPLETED.

    Runs hourly.

    Returns:
        dict: {"completed": number of completed bookings}
    """
    from .application.command_handlers import CompleteBookingCommand, CompleteBookingHandler

    today = timezone.localdate()
    completed_count = 0
    handler = CompleteBookingHandler()

    finished = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        end_date__lte=today,
    ).values_list("pk", flat=True)

    for booking_id in finished:
        try:
            handler.handle(CompleteBookingCommand(booking_id=booking_id))
            completed_count += 1
        except DomainError as e:
            # Cancelled between the query and the update.
            logger.warning(f"Booking {booking_id} not completed: {e.message}")

    if completed_count > 0:
        logger.info(f"Completed {completed_count} bookings")

    return {"completed": completed_count}


# ============================================================================
# NOTIFICATION TASKS
# ============================================================================

@shared_task(name="bookings.send_booking_confirmation")
def send_booking_confirmation(booking_id: int) -> bool:
    """E-mail the camper that the payment went through and the stay is booked."""
    booking = (
        Booking.objects.select_related("user", "campground", "campsite")
        .filter(pk=booking_id)
        .first()
    )
    if booking is None:
        logger.warning(f"Booking {booking_id} not found for confirmation e-mail")
        return False
    if not booking.user.email:
        return False

    unit = f", {booking.campsite.name}" if booking.campsite_id else ""
    send_mail(
        subject=f"Booking #{booking.pk} confirmed",
        message=(
            f"Your stay at {booking.campground.title}{unit} is confirmed.\n"
            f"Dates: {booking.start_date} - {booking.end_date} ({booking.total_days} night(s))\n"
            f"Guests: {booking.guest_count}\n"
            f"Paid: {booking.total_price} {booking.currency}\n"
        ),
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=[booking.user.email],
        fail_silently=False,
    )
    logger.info(f"[NOTIFICATION] Booking confirmation sent: {booking.pk} to {booking.user.email}")
    return True


@shared_task(name="bookings.send_cancellation_notice")
def send_cancellation_notice(booking_id: int) -> bool:
    """E-mail the camper that the booking was cancelled, restating the no-refund policy."""
    from .application.command_handlers import NO_REFUND_WARNING

    booking = (
        Booking.objects.select_related("user", "campground")
        .filter(pk=booking_id)
        .first()
    )
    if booking is None:
        logger.warning(f"Booking {booking_id} not found for cancellation notice")
        return False
    if not booking.user.email:
        return False

    send_mail(
        subject=f"Booking #{booking.pk} cancelled",
        message=(
            f"Your booking at {booking.campground.title} "
            f"({booking.start_date} - {booking.end_date}) has been cancelled.\n\n"
            f"{NO_REFUND_WARNING}\n"
        ),
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=[booking.user.email],
        fail_silently=False,
    )
    logger.info(f"[NOTIFICATION] Cancellation notice sent: {booking.pk} to {booking.user.email}")
    return True
