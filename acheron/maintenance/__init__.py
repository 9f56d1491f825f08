"""Background maintenance for the store."""

from acheron.maintenance.service import MaintenanceService

__all__ = ["MaintenanceService"]
