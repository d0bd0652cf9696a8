"""Management command to check balances against the audit trail."""

from django.core.management.base import BaseCommand, CommandError

from pointsman.service import LedgerService


class Command(BaseCommand):
    help = "Verify every customer's points equal purchases minus redemptions"

    def handle(self, *args, **options):
        discrepancies = LedgerService.audit_balances()
        for item in discrepancies:
            self.stderr.write(
                f"{item.phone}: recorded {item.recorded}, expected {item.expected}"
            )
        if discrepancies:
            raise CommandError(f"{len(discrepancies)} balance(s) out of sync.")
        self.stdout.write(self.style.SUCCESS("All balances match the audit trail."))
