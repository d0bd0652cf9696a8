"""Audit trail models: purchases and redemptions.

Both are append-only. Rows are written once inside the ledger
transaction that changes the balance and are never updated or deleted.
"""

import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _

from pointsman.exceptions import ErrorCode, PointsmanError
from pointsman.rules import RewardTier


class LedgerRecord(models.Model):
    """Immutable base for audit trail rows."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    created_by = models.CharField(
        _("created by"),
        max_length=150,
        blank=True,
        help_text=_("Principal that recorded the entry"),
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    @property
    def customer_phone(self) -> str:
        return self.customer_id

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PointsmanError(ErrorCode.RECORD_IMMUTABLE, record=str(self.pk))
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PointsmanError(ErrorCode.RECORD_IMMUTABLE, record=str(self.pk))


class Purchase(LedgerRecord):
    """A purchase and the points it earned."""

    customer = models.ForeignKey(
        "pointsman.Customer",
        on_delete=models.PROTECT,
        related_name="purchases",
        db_column="customer_phone",
        verbose_name=_("customer"),
    )
    amount = models.DecimalField(_("amount"), max_digits=12, decimal_places=2)
    points_earned = models.IntegerField(_("points earned"))

    class Meta(LedgerRecord.Meta):
        db_table = "pointsman_purchase"
        verbose_name = _("purchase")
        verbose_name_plural = _("purchases")
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="pointsman_purchase_cust_idx"),
        ]

    def __str__(self):
        return f"+{self.points_earned}pts ({self.amount})"


class Redemption(LedgerRecord):
    """A reward redemption and the points it spent."""

    customer = models.ForeignKey(
        "pointsman.Customer",
        on_delete=models.PROTECT,
        related_name="redemptions",
        db_column="customer_phone",
        verbose_name=_("customer"),
    )
    tier = models.CharField(_("tier"), max_length=10, choices=RewardTier.choices)
    points_spent = models.IntegerField(_("points spent"))
    reward_kg = models.DecimalField(_("reward (kg)"), max_digits=5, decimal_places=2)

    class Meta(LedgerRecord.Meta):
        db_table = "pointsman_redemption"
        verbose_name = _("redemption")
        verbose_name_plural = _("redemptions")
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="pointsman_redemption_cust_idx"),
        ]

    def __str__(self):
        return f"-{self.points_spent}pts ({self.reward_kg} kg)"
