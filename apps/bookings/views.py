"""API views for the booking domain."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.campgrounds.models import Campground
from apps.payments.gateway import PaymentGatewayError, get_checkout_gateway
from shared.domain.exceptions import UpstreamError
from shared.infrastructure.api import DomainErrorMixin

from .application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    ConfirmPaymentCommand,
    ConfirmPaymentHandler,
    QuoteBookingCommand,
    QuoteBookingHandler,
)
from .models import Booking
from .serializers import BookingRequestSerializer, BookingSerializer


def _quote_from_request(request, campground_id):
    serializer = BookingRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    return QuoteBookingHandler().handle(
        QuoteBookingCommand(
            user=request.user,
            campground_id=campground_id,
            campsite_id=data.get("campsite"),
            start_date=data["start_date"],
            end_date=data["end_date"],
            guest_count=data["guest_count"],
        )
    )


class BookingQuoteView(DomainErrorMixin, APIView):
    """Price a stay. Nothing is reserved until the payment is confirmed."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, campground_id):  # type: ignore
        quote = _quote_from_request(request, campground_id)
        return Response({"quote": quote.to_dict()}, status=status.HTTP_200_OK)


class CheckoutView(DomainErrorMixin, APIView):
    """Open a hosted checkout session for a freshly computed quote."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, campground_id):  # type: ignore
        quote = _quote_from_request(request, campground_id)
        campground = get_object_or_404(Campground, pk=campground_id)

        frontend_url = getattr(settings, "FRONTEND_URL", "").rstrip("/")
        try:
            session = get_checkout_gateway().create_session(
                quote,
                title=f"Booking for {campground.title}",
                success_url=f"{frontend_url}/bookings/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{frontend_url}/campgrounds/{campground.pk}",
            )
        except PaymentGatewayError as exc:
            raise UpstreamError(f"Could not create checkout session: {exc}", campground_id=campground.pk)

        return Response(
            {"session_id": session.session_id, "session_url": session.url, "quote": quote.to_dict()},
            status=status.HTTP_200_OK,
        )


class BookingViewSet(DomainErrorMixin, viewsets.ReadOnlyModelViewSet):
    """Read paths, confirmation and cancellation of bookings."""

    queryset = Booking.objects.select_related("campground", "campsite", "user").all()
    serializer_class = BookingSerializer
    lookup_value_regex = r"\d+"
    filterset_fields = ["status", "campground", "campsite"]
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not getattr(user, "is_admin", False):
            qs = qs.filter(user=user)
        if self.action == "list":
            show_cancelled = self.request.query_params.get("show_cancelled", "").lower() in ("1", "true", "yes")
            if not show_cancelled:
                qs = qs.exclude(status=Booking.Status.CANCELLED)
        return qs

    @action(detail=True, methods=["patch"])
    def cancel(self, request, pk=None):  # type: ignore
        result = CancelBookingHandler().handle(CancelBookingCommand(booking_id=pk, user=request.user))
        data = BookingSerializer(result.booking, context=self.get_serializer_context()).data
        return Response({"booking": data, "warning": result.warning}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="payment-success")
    def payment_success(self, request):  # type: ignore
        session_id = request.query_params.get("session_id")
        if not session_id:
            return Response(
                {"error": "invalid_request", "detail": "session_id is required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = ConfirmPaymentHandler().handle(
            ConfirmPaymentCommand(session_id=session_id, user_id=request.user.pk)
        )
        data = BookingSerializer(result.booking, context=self.get_serializer_context()).data
        return Response({"booking": data, "created": result.created}, status=status.HTTP_200_OK)
