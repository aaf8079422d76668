"""DRF helpers shared by the domain apps."""

from __future__ import annotations

import logging

from rest_framework.response import Response  # type: ignore

from shared.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


class DomainErrorMixin:
    """Render DomainError subclasses as `{"error", "detail", ...}` responses."""

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, DomainError):
            logger.info(f"{self.__class__.__name__}: {exc.code} ({exc.message})")
            return Response(exc.to_dict(), status=exc.status_code)
        return super().handle_exception(exc)  # type: ignore[misc]
