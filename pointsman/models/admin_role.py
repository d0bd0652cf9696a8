"""AdminRole marker model."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AdminRole(models.Model):
    """
    Marks an identity-provider principal as staff.

    Only its existence matters: a principal is an admin iff a row with
    its uid exists.
    """

    uid = models.CharField(_("principal id"), max_length=150, primary_key=True)
    created_at = models.DateTimeField(_("granted at"), auto_now_add=True)

    class Meta:
        db_table = "pointsman_admin_role"
        verbose_name = _("admin role")
        verbose_name_plural = _("admin roles")

    def __str__(self):
        return f"admin:{self.uid}"
