"""
Django implementation of the AuditSink port.
"""
from typing import List

from licenses.domain.license import AuditEntry
from licenses.infrastructure.models import AuditLog
from licenses.ports.audit_sink import AuditSink


class DjangoAuditSink(AuditSink):
    """Writes audit entries as rows of the audit log table."""

    def append(self, license_key: str, entry: AuditEntry) -> None:
        AuditLog.objects.create(
            license_key=license_key,
            message=entry.message,
            metadata=entry.metadata,
            actor=entry.actor,
            created_at=entry.timestamp,
        )

    def entries_for(self, license_key: str) -> List[AuditEntry]:
        rows = AuditLog.objects.filter(license_key=license_key).order_by("created_at")
        return [
            AuditEntry(
                timestamp=row.created_at,
                message=row.message,
                metadata=row.metadata,
                actor=row.actor,
            )
            for row in rows
        ]
