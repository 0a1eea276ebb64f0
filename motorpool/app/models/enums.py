"""
Enumerations for the motor pool booking system.

Defines user privilege tiers, booking statuses and audit action tags.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration, lowest privilege first.
    
    Roles:
        USER: Staff member who submits and cancels their own bookings (default role)
        ADMIN: Processes bookings (approve / reject) and manages drivers and vehicles
        SUPERADMIN: Highest tier; may re-open already processed bookings
    """
    USER = "USER"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


PROCESSOR_ROLES = (UserRole.ADMIN, UserRole.SUPERADMIN)


class BookingStatus(str, enum.Enum):
    """Booking status enumeration."""
    PENDING = "pending"  # Submitted, awaiting processing
    APPROVED = "approved"  # Driver and vehicle assigned
    REJECTED = "rejected"  # Refused by a processor
    CANCELLED = "cancelled"  # Withdrawn by the requester before departure


class BookingAuditAction(str, enum.Enum):
    """Tags recorded in the booking audit trail, one per transition."""
    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"
    CANCELLED = "cancelled"
