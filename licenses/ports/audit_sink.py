"""
Audit sink port (interface).

An append-only destination for license audit entries.
"""
from abc import ABC, abstractmethod
from typing import List

from licenses.domain.license import AuditEntry


class AuditSink(ABC):
    """Append-only audit trail."""

    @abstractmethod
    def append(self, license_key: str, entry: AuditEntry) -> None:
        """
        Record an audit entry for a license.

        Args:
            license_key: License the entry belongs to
            entry: Timestamped message and metadata
        """

    @abstractmethod
    def entries_for(self, license_key: str) -> List[AuditEntry]:
        """Return entries for a license, oldest first."""
