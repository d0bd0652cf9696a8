"""Management command to grant or revoke the admin role."""

from django.core.management.base import BaseCommand

from pointsman.services import accounts


class Command(BaseCommand):
    help = "Grant or revoke the AdminRole marker for an identity-provider uid"

    def add_arguments(self, parser):
        parser.add_argument("action", choices=["grant", "revoke"])
        parser.add_argument("uid", help="Principal id (auth user pk)")

    def handle(self, *args, **options):
        uid = options["uid"]
        if options["action"] == "grant":
            accounts.grant_admin(uid)
            self.stdout.write(self.style.SUCCESS(f"Granted admin role to {uid}."))
        else:
            accounts.revoke_admin(uid)
            self.stdout.write(self.style.SUCCESS(f"Revoked admin role from {uid}."))
