import pytest

from apps.users.models import User

pytestmark = pytest.mark.django_db


def test_create_user_defaults_to_camper():
    user = User.objects.create_user(email="Camper@Example.COM", password="CamperPass123")

    assert user.role == User.RoleChoices.CAMPER
    assert user.email == "Camper@example.com"
    assert user.check_password("CamperPass123")
    assert not user.is_admin
    assert not user.is_owner


def test_create_user_requires_email():
    with pytest.raises(ValueError):
        User.objects.create_user(email="", password="x")


@pytest.mark.parametrize(
    "extra",
    [{"role": User.RoleChoices.ADMIN}, {"is_staff": True}, {"is_superuser": True}],
)
def test_admin_flags(extra):
    user = User.objects.create_user(email="boss@example.com", password="BossPass123", **extra)

    assert user.is_admin


def test_superuser_is_admin():
    user = User.objects.create_superuser(email="root@example.com", password="RootPass123")

    assert user.is_admin
    assert user.role == User.RoleChoices.ADMIN
