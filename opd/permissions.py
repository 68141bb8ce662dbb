"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission

ROLE_ADMIN = 'admin'
ROLE_DOCTOR = 'doctor'
STAFF_ROLES = {ROLE_ADMIN, ROLE_DOCTOR}


def _role(request):
    user = getattr(request, 'user', None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, 'role', None)


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == ROLE_ADMIN


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role and a doctor profile."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == ROLE_DOCTOR and hasattr(request.user, 'doctor_profile')


class IsQueueOperator(BasePermission):
    """Doctors and administrators may drive the queue."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in STAFF_ROLES
