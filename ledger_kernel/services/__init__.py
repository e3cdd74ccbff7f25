"""Kernel services: the engines that own every state change."""

from ledger_kernel.services.access_service import AccessService
from ledger_kernel.services.activity_service import ActivityService
from ledger_kernel.services.backup_service import BackupService
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.business_service import BusinessService
from ledger_kernel.services.csv_service import CsvService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.reference_service import ReferenceDataService
from ledger_kernel.services.shop_service import EmployeeService, PartService

__all__ = [
    "AccessService",
    "ActivityService",
    "BackupService",
    "BaseService",
    "BusinessService",
    "CsvService",
    "EmployeeService",
    "LedgerService",
    "PartService",
    "ReferenceDataService",
]
