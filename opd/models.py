"""
Database models for the SmartOPD backend.

The queue lives entirely in these tables: a department owns its own
token sequence, every registered patient is a :class:`Token` row and
every status change is recorded as a :class:`TokenTransition`.  Doctors
and administrators are ordinary users with a role.
"""
from __future__ import annotations

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager as BaseUserManager
from django.db import models
from django.db.models import Q
from django_prometheus.models import ExportModelOperationsMixin


def _default_avg_minutes() -> int:
    return settings.OPD_AVG_CONSULTATION_MINUTES


class Department(models.Model):
    """An outpatient department; the scope of a token sequence.

    Token numbers, the waiting order and the single patient being
    served are all tracked per department.  The row is locked with
    ``select_for_update`` while a number is allocated or the queue is
    advanced.
    """
    name = models.CharField(max_length=100, unique=True)
    code = models.CharField(max_length=8, unique=True, help_text="Token label prefix, e.g. 'GEN'")
    avg_consultation_minutes = models.PositiveIntegerField(default=_default_avg_minutes)
    is_open = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class UserManager(BaseUserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """Custom user model carrying a role.

    Patients never log in; only doctors and administrators hold
    accounts.
    """
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_DOCTOR, db_index=True)

    objects = UserManager()

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Doctor(models.Model):
    """Doctor profile with an approval status and a queue-pause flag."""
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    name = models.CharField(max_length=255)
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='doctors')
    phone = models.CharField(max_length=20, blank=True)
    license_no = models.CharField(max_length=50, blank=True)
    experience_years = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    is_queue_paused = models.BooleanField(default=False)
    reviewed_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_reviews'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['department', 'status'], name='doctor_dept_status_idx'),
        ]

    @property
    def is_active(self) -> bool:
        """True when this doctor lets the department queue advance."""
        return self.status == self.STATUS_APPROVED and not self.is_queue_paused

    def __str__(self) -> str:
        return f"{self.name} [{self.department.code}] ({self.status})"


class Token(ExportModelOperationsMixin('token'), models.Model):
    """A registered patient and the queue ticket they hold.

    ``number`` is unique and strictly increasing inside the department.
    At most one token per department may be ``called`` at a time; this
    is enforced by a partial unique constraint on top of the row locks
    taken in :mod:`opd.services.queue`.
    """
    STATUS_WAITING = 'waiting'
    STATUS_CALLED = 'called'
    STATUS_COMPLETED = 'completed'
    STATUS_MISSED = 'missed'
    STATUS_CHOICES = [
        (STATUS_WAITING, 'Waiting'),
        (STATUS_CALLED, 'Called'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_MISSED, 'Missed'),
    ]
    GENDER_CHOICES = [
        ('Male', 'Male'),
        ('Female', 'Female'),
        ('Other', 'Other'),
    ]

    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='tokens')
    number = models.PositiveIntegerField()
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20)
    age = models.PositiveIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    symptoms = models.TextField(blank=True)
    preferred_doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='preferred_tokens'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_WAITING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    called_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['department', 'number'], name='unique_token_number_per_department'),
            models.UniqueConstraint(
                fields=['department'],
                condition=Q(status='called'),
                name='one_called_token_per_department',
            ),
        ]
        indexes = [
            models.Index(fields=['department', 'status', 'number'], name='token_dept_status_number_idx'),
        ]

    @property
    def label(self) -> str:
        return f"{self.department.code}-{self.number:03d}"

    def __str__(self) -> str:
        return f"Token {self.label} ({self.status})"


class TokenTransition(models.Model):
    """Records a status transition for a token."""
    token = models.ForeignKey(Token, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=10, null=True, blank=True)
    to_status = models.CharField(max_length=10)
    operator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='token_transitions'
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.token_id}: {self.from_status} → {self.to_status}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
