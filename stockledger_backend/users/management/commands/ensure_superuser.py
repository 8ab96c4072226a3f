# users/management/commands/ensure_superuser.py

"""
Superuser bootstrap for hosts without a shell.

- Reads AUTO_ADMIN_EMAIL + AUTO_ADMIN_PASSWORD (and optional AUTO_ADMIN_TENANT_CODE) from env.
- Idempotent: creates the superuser if missing; resets its password if it exists.
- Never prints the password.
"""

from __future__ import annotations

import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from tenants.models import Tenant


class Command(BaseCommand):
    help = "Create/update an initial superuser from env vars (idempotent)."

    def handle(self, *args, **options):
        email = (os.environ.get("AUTO_ADMIN_EMAIL") or "").strip()
        password = (os.environ.get("AUTO_ADMIN_PASSWORD") or "").strip()
        tenant_code = (os.environ.get("AUTO_ADMIN_TENANT_CODE") or "").strip()

        if not email or not password:
            self.stdout.write(self.style.WARNING("AUTO_ADMIN_* env vars not set. Skipping."))
            return

        User = get_user_model()

        tenant = None
        if tenant_code:
            tenant = Tenant.objects.filter(code=tenant_code).first()
            if tenant is None:
                raise CommandError(f"Tenant not found: {tenant_code}")

        with transaction.atomic():
            user = User.objects.filter(email__iexact=email).first()

            if user:
                user.is_active = True
                user.is_staff = True
                user.is_superuser = True
                user.role = User.ROLE_ADMIN
                if tenant is not None:
                    user.tenant = tenant
                user.set_password(password)
                user.save()
                self.stdout.write(self.style.SUCCESS(f"Superuser ensured: {user.email} (updated)"))
                return

            user = User.objects.create_superuser(email=email, password=password, tenant=tenant)
            self.stdout.write(self.style.SUCCESS(f"Superuser ensured: {user.email} (created)"))
