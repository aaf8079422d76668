import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("campgrounds", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="SafetyAlert",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=100)),
                ("description", models.TextField(max_length=1000)),
                (
                    "severity",
                    models.CharField(
                        choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")],
                        default="medium",
                        max_length=10,
                    ),
                ),
                (
                    "alert_type",
                    models.CharField(
                        choices=[
                            ("weather", "Weather"),
                            ("wildlife", "Wildlife"),
                            ("fire", "Fire"),
                            ("flood", "Flood"),
                            ("medical", "Medical"),
                            ("security", "Security"),
                            ("maintenance", "Maintenance"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("resolved", "Resolved"), ("expired", "Expired")],
                        default="active",
                        max_length=10,
                    ),
                ),
                ("start_date", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "end_date",
                    models.DateTimeField(
                        blank=True,
                        help_text="Leave empty for an alert that stays active until resolved.",
                        null=True,
                    ),
                ),
                ("is_public", models.BooleanField(default=True)),
                ("requires_acknowledgement", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "campground",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="safety_alerts",
                        to="campgrounds.campground",
                    ),
                ),
                (
                    "campsite",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="safety_alerts",
                        to="campgrounds.campsite",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="created_safety_alerts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Safety alert",
                "verbose_name_plural": "Safety alerts",
                "ordering": ["-start_date"],
                "indexes": [
                    models.Index(fields=["campground", "status", "start_date"], name="alert_campground_status_idx"),
                    models.Index(fields=["campsite", "status", "start_date"], name="alert_campsite_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("campground__isnull", False), ("campsite__isnull", True)),
                            models.Q(("campground__isnull", True), ("campsite__isnull", False)),
                            _connector="OR",
                        ),
                        name="safety_alert_single_target",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AlertAcknowledgement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("acknowledged_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "alert",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="acknowledgements",
                        to="safety.safetyalert",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alert_acknowledgements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Alert acknowledgement",
                "verbose_name_plural": "Alert acknowledgements",
                "constraints": [
                    models.UniqueConstraint(fields=("alert", "user"), name="alert_acknowledged_once"),
                ],
            },
        ),
    ]
