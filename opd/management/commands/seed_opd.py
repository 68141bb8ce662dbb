# opd/management/commands/seed_opd.py
from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from opd.constants import DEFAULT_DEPARTMENTS, DEPARTMENT_CODES
from opd.models import Department, Doctor, User
from opd.services.departments import invalidate_departments_cache

DEMO_DOCTORS = [
    ("dr.sharma", "Dr. Sharma", "GEN"),
    ("dr.patel", "Dr. Patel", "CAR"),
    ("dr.singh", "Dr. Singh", "PED"),
]


class Command(BaseCommand):
    help = "Create the default departments, an admin and approved demo doctors (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="opd12345", help="Password set on every seeded account")
        parser.add_argument("--default-code", help="Label prefix for OPD_DEFAULT_DEPARTMENT when it is not a standard department")

    @transaction.atomic
    def handle(self, *args, **opts):
        password = make_password(opts["password"])

        for name, code in DEFAULT_DEPARTMENTS:
            _, created = Department.objects.get_or_create(code=code, defaults={"name": name})
            self.stdout.write(f"{'created' if created else 'exists'}: department {code}")

        default_name = settings.OPD_DEFAULT_DEPARTMENT
        if not Department.objects.filter(name__iexact=default_name).exists():
            code = opts["default_code"] or DEPARTMENT_CODES.get(default_name)
            if not code:
                raise CommandError(f"Default department \"{default_name}\" is not a standard one; pass --default-code.")
            if Department.objects.filter(code__iexact=code).exists():
                raise CommandError(f"Department code {code} is already taken; pass another --default-code.")
            Department.objects.create(name=default_name, code=code.upper())
            self.stdout.write(f"created: default department {code.upper()}")

        admin, created = User.objects.get_or_create(
            username="admin",
            defaults={"role": User.ROLE_ADMIN, "password": password, "is_staff": True},
        )
        if not created:
            admin.password = password
            admin.role = User.ROLE_ADMIN
            admin.is_active = True
            admin.save(update_fields=["password", "role", "is_active"])
        self.stdout.write(self.style.SUCCESS("ok: admin (admin)"))

        for username, name, code in DEMO_DOCTORS:
            user, _ = User.objects.get_or_create(
                username=username,
                defaults={"role": User.ROLE_DOCTOR, "password": password, "first_name": name},
            )
            Doctor.objects.update_or_create(
                user=user,
                defaults={
                    "name": name,
                    "department": Department.objects.get(code=code),
                    "status": Doctor.STATUS_APPROVED,
                    "is_queue_paused": False,
                    "reviewed_by": admin,
                    "reviewed_at": timezone.now(),
                },
            )
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({code})"))

        invalidate_departments_cache()
        self.stdout.write(self.style.SUCCESS("OPD seed data ensured."))
