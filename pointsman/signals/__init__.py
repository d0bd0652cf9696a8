"""
Pointsman signals - public event API.

Emitted signals:
- customer_registered: Emitted by services.accounts.register_customer()
- auth_state_changed:  Emitted by services.accounts login/logout
- points_awarded:      Emitted by LedgerService.award_points()
- points_redeemed:     Emitted by LedgerService.redeem_points()
"""

from django.dispatch import Signal

# Account signals
customer_registered = Signal()  # sender=Customer, customer=CustomerRecord
auth_state_changed = Signal()  # sender=Principal, principal=Principal, is_authenticated=bool

# Ledger signals (sent after the transaction commits)
points_awarded = Signal()  # sender=Purchase, phone, points_earned, new_balance, purchase_id
points_redeemed = Signal()  # sender=Redemption, phone, tier, points_spent, new_balance, redemption_id
