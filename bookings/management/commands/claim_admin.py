from django.core.management.base import BaseCommand, CommandError

from bookings.exceptions import InvalidInput
from bookings.services import UserRoleService
from bookings.utils import mask_email


class Command(BaseCommand):
    help = "Grant the ADMIN role to an account, creating it if it does not exist yet"

    def add_arguments(self, parser):
        parser.add_argument("email", help="Email address of the account to promote")
        parser.add_argument("--name", default=None, help="Display name for a newly created account")

    def handle(self, *args, **options):
        try:
            user, created = UserRoleService.claim_admin(options["email"], name=options["name"])
        except InvalidInput as e:
            raise CommandError(e.message)

        action = "Created admin account" if created else "Promoted existing account to admin"
        self.stdout.write(self.style.SUCCESS(f"{action}: {mask_email(user.email)} (id {user.pk})"))
