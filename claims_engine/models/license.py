"""Clinician license model."""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import uuid4

from .enums import LicenseStatus

CLAIMABLE_LICENSE_STATUSES = frozenset({LicenseStatus.ACTIVE, LicenseStatus.PENDING_RENEWAL})


def _as_date(moment) -> date:
    return moment.date() if isinstance(moment, datetime) else moment


@dataclass
class ClinicianLicense:
    """A clinician's professional license as tracked for DOH compliance."""
    clinician_identity: str
    expiry_date: date
    status: LicenseStatus = LicenseStatus.ACTIVE
    id: str = field(default_factory=lambda: str(uuid4()))
    license_number: Optional[str] = None

    def valid_for_claims(self, now) -> bool:
        """True when the status allows billing and the license expires strictly after ``now``."""
        if self.status not in CLAIMABLE_LICENSE_STATUSES:
            return False
        return self.expiry_date > _as_date(now)

    def expires_within(self, days: int, now) -> bool:
        """True when the license is still valid but expires within ``days``."""
        today = _as_date(now)
        return today < self.expiry_date <= today + timedelta(days=days)
