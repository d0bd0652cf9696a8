"""Customer model.

One Customer per normalized phone number. ``points`` is a materialized
running balance; it always equals the customer's purchase points minus
redemption points (see pointsman.service.LedgerService.audit_balances).
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from pointsman.utils import normalize_phone


class Customer(models.Model):
    """
    Loyalty customer, keyed by phone.

    Balance mutations go through LedgerService only; never assign
    ``points`` directly outside a store transaction.
    """

    phone = models.CharField(
        _("phone"),
        max_length=16,
        primary_key=True,
        help_text=_("Normalized phone: '+' followed by 10 to 15 digits."),
    )
    name = models.CharField(_("name"), max_length=200, blank=True)
    points = models.IntegerField(
        _("points"),
        default=0,
        help_text=_("Unspent points"),
    )

    # Link to the identity provider principal (auth user pk)
    identity_ref = models.CharField(
        _("identity reference"),
        max_length=150,
        blank=True,
        db_index=True,
    )

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    last_login = models.DateTimeField(_("last login"), null=True, blank=True)

    class Meta:
        db_table = "pointsman_customer"
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(points__gte=0),
                name="pointsman_customer_points_non_negative",
            ),
        ]

    def __str__(self):
        label = self.name or self.phone
        return f"{label}: {self.points}pts"

    def save(self, *args, **kwargs):
        self.phone = normalize_phone(self.phone)
        self.name = (self.name or "").strip()
        super().save(*args, **kwargs)
