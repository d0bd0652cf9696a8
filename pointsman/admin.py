"""Pointsman admin (staff dashboard).

Balances are read-only here: points only move through LedgerService
actions (record a purchase, redeem a tier) so every change leaves an
audit record. Purchases and redemptions cannot be added, edited or
deleted directly.
"""

from decimal import Decimal

from django import forms
from django.contrib import admin, messages
from django.contrib.admin import helpers
from django.template.response import TemplateResponse
from django.utils.html import format_html

from pointsman.exceptions import PointsmanError, describe_error
from pointsman.identity import principal_for_user
from pointsman.models import AdminRole, Customer, Purchase, Redemption
from pointsman.rules import RewardTier
from pointsman.service import LedgerService


# ===========================================
# Forms
# ===========================================


class PurchaseAmountForm(forms.Form):
    amount = forms.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        help_text="Purchase total; earns 5 points per full 100.",
    )


# ===========================================
# Inline Classes (must be defined before CustomerAdmin)
# ===========================================


class _ReadOnlyInline(admin.TabularInline):
    extra = 0
    ordering = ["-created_at"]

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class PurchaseInline(_ReadOnlyInline):
    model = Purchase
    fields = ["created_at", "amount", "points_earned", "created_by"]
    readonly_fields = fields
    verbose_name_plural = "Purchases"


class RedemptionInline(_ReadOnlyInline):
    model = Redemption
    fields = ["created_at", "tier", "points_spent", "reward_kg", "created_by"]
    readonly_fields = fields
    verbose_name_plural = "Redemptions"


# ===========================================
# Customer Admin
# ===========================================


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = [
        "phone",
        "name",
        "points_badge",
        "created_at",
        "last_login",
    ]
    search_fields = ["phone", "name"]
    readonly_fields = ["phone", "points", "identity_ref", "created_at", "last_login"]
    inlines = [PurchaseInline, RedemptionInline]
    actions = ["award_purchase", "redeem_small", "redeem_large"]

    fieldsets = [
        ("Customer", {"fields": ["phone", "name"]}),
        ("Loyalty", {"fields": ["points"]}),
        (
            "System",
            {
                "fields": ["identity_ref", "created_at", "last_login"],
                "classes": ["collapse"],
            },
        ),
    ]

    def points_badge(self, obj):
        color = "green" if obj.points >= 100 else "gray"
        return format_html('<span style="color:{}">{}</span>', color, obj.points)

    points_badge.short_description = "Points"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Record a purchase")
    def award_purchase(self, request, queryset):
        """Ask for the purchase amount, then award points to each customer."""
        if "apply" in request.POST:
            form = PurchaseAmountForm(request.POST)
            if form.is_valid():
                self._award(request, queryset, form.cleaned_data["amount"])
                return None
        else:
            form = PurchaseAmountForm()

        return TemplateResponse(
            request,
            "admin/pointsman/customer/award_purchase.html",
            {
                **self.admin_site.each_context(request),
                "title": "Record a purchase",
                "opts": self.model._meta,
                "customers": queryset,
                "form": form,
                "action_checkbox_name": helpers.ACTION_CHECKBOX_NAME,
            },
        )

    def _award(self, request, queryset, amount):
        principal = principal_for_user(request.user)
        for customer in queryset:
            try:
                result = LedgerService.award_points(
                    customer.phone,
                    amount,
                    principal=principal,
                )
            except PointsmanError as exc:
                self.message_user(
                    request,
                    f"{customer.phone}: {describe_error(exc)}",
                    level=messages.ERROR,
                )
                continue
            self.message_user(
                request,
                f"{customer.phone}: +{result.points_earned} points, "
                f"balance {result.new_balance}.",
                level=messages.SUCCESS,
            )

    @admin.action(description="Redeem 100 points (0.5 kg)")
    def redeem_small(self, request, queryset):
        self._redeem(request, queryset, RewardTier.SMALL)

    @admin.action(description="Redeem 180 points (0.75 kg)")
    def redeem_large(self, request, queryset):
        self._redeem(request, queryset, RewardTier.LARGE)

    def _redeem(self, request, queryset, tier):
        principal = principal_for_user(request.user)
        for customer in queryset:
            try:
                result = LedgerService.redeem_points(
                    customer.phone,
                    tier,
                    principal=principal,
                )
            except PointsmanError as exc:
                self.message_user(
                    request,
                    f"{customer.phone}: {describe_error(exc)}",
                    level=messages.ERROR,
                )
                continue
            self.message_user(
                request,
                f"{customer.phone}: redeemed {result.reward_kg} kg, "
                f"{result.new_balance} points left.",
                level=messages.SUCCESS,
            )


# ===========================================
# Audit trail Admin
# ===========================================


class _AuditTrailAdmin(admin.ModelAdmin):
    date_hierarchy = "created_at"
    search_fields = ["customer__phone", "customer__name", "created_by"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Purchase)
class PurchaseAdmin(_AuditTrailAdmin):
    list_display = ["created_at", "customer", "amount", "points_display", "created_by"]

    def points_display(self, obj):
        return format_html('<span style="color:green">+{}</span>', obj.points_earned)

    points_display.short_description = "Points"


@admin.register(Redemption)
class RedemptionAdmin(_AuditTrailAdmin):
    list_display = ["created_at", "customer", "tier", "points_display", "reward_kg", "created_by"]
    list_filter = ["tier"]

    def points_display(self, obj):
        return format_html('<span style="color:red">-{}</span>', obj.points_spent)

    points_display.short_description = "Points"


# ===========================================
# AdminRole Admin
# ===========================================


@admin.register(AdminRole)
class AdminRoleAdmin(admin.ModelAdmin):
    list_display = ["uid", "created_at"]
    search_fields = ["uid"]
    readonly_fields = ["created_at"]
