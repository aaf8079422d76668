"""
Booking event handlers

Subscribed to the message bus in BookingsConfig.ready(); they run after
the transaction that raised the event has committed.
"""

import logging

from shared.application.message_bus import message_bus

from .domain.events import BookingCancelled, BookingConfirmed

logger = logging.getLogger(__name__)


def on_booking_confirmed(event: BookingConfirmed):
    from .tasks import send_booking_confirmation

    send_booking_confirmation.delay(event.booking_id)


def on_booking_cancelled(event: BookingCancelled):
    from .tasks import send_cancellation_notice

    send_cancellation_notice.delay(event.booking_id)


def register_handlers():
    message_bus.register_event_handler(BookingConfirmed, on_booking_confirmed)
    message_bus.register_event_handler(BookingCancelled, on_booking_cancelled)
    logger.debug("Booking event handlers registered")
