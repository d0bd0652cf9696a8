# Initial migration for the points ledger

import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                (
                    "phone",
                    models.CharField(
                        help_text="Normalized phone: '+' followed by 10 to 15 digits.",
                        max_length=16,
                        primary_key=True,
                        serialize=False,
                        verbose_name="phone",
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=200, verbose_name="name")),
                (
                    "points",
                    models.IntegerField(default=0, help_text="Unspent points", verbose_name="points"),
                ),
                (
                    "identity_ref",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        max_length=150,
                        verbose_name="identity reference",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at"),
                ),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
            ],
            options={
                "verbose_name": "customer",
                "verbose_name_plural": "customers",
                "db_table": "pointsman_customer",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("points__gte", 0)),
                        name="pointsman_customer_points_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AdminRole",
            fields=[
                (
                    "uid",
                    models.CharField(
                        max_length=150,
                        primary_key=True,
                        serialize=False,
                        verbose_name="principal id",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="granted at")),
            ],
            options={
                "verbose_name": "admin role",
                "verbose_name_plural": "admin roles",
                "db_table": "pointsman_admin_role",
            },
        ),
        migrations.CreateModel(
            name="Purchase",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at"),
                ),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="Principal that recorded the entry",
                        max_length=150,
                        verbose_name="created by",
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="amount")),
                ("points_earned", models.IntegerField(verbose_name="points earned")),
                (
                    "customer",
                    models.ForeignKey(
                        db_column="customer_phone",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchases",
                        to="pointsman.customer",
                        verbose_name="customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "purchase",
                "verbose_name_plural": "purchases",
                "db_table": "pointsman_purchase",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["customer", "-created_at"],
                        name="pointsman_purchase_cust_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at"),
                ),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="Principal that recorded the entry",
                        max_length=150,
                        verbose_name="created by",
                    ),
                ),
                (
                    "tier",
                    models.CharField(
                        choices=[("small", "0.5 kg"), ("large", "0.75 kg")],
                        max_length=10,
                        verbose_name="tier",
                    ),
                ),
                ("points_spent", models.IntegerField(verbose_name="points spent")),
                (
                    "reward_kg",
                    models.DecimalField(decimal_places=2, max_digits=5, verbose_name="reward (kg)"),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        db_column="customer_phone",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="pointsman.customer",
                        verbose_name="customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "redemption",
                "verbose_name_plural": "redemptions",
                "db_table": "pointsman_redemption",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["customer", "-created_at"],
                        name="pointsman_redemption_cust_idx",
                    ),
                ],
            },
        ),
    ]
