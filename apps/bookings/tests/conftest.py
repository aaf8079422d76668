from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone

from apps.campgrounds.models import Campground, Campsite
from apps.payments.gateway import EmulatedCheckoutGateway
from apps.users.models import User


@pytest.fixture
def camper(db):
    return User.objects.create_user(email="camper@example.com", password="CamperPass123")


@pytest.fixture
def other_camper(db):
    return User.objects.create_user(email="other@example.com", password="OtherPass123")


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@example.com",
        password="AdminPass123",
        role=User.RoleChoices.ADMIN,
    )


@pytest.fixture
def campground(db):
    return Campground.objects.create(title="Pine Lake", location="Lake County")


@pytest.fixture
def campsite(campground):
    return Campsite.objects.create(
        campground=campground,
        name="A1",
        nightly_price=Decimal("50.00"),
        capacity=4,
    )


@pytest.fixture
def tomorrow():
    return timezone.localdate() + timedelta(days=1)


@pytest.fixture
def gateway():
    cache.clear()
    yield EmulatedCheckoutGateway()
    cache.clear()
