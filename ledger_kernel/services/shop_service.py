"""Employee and spare-part records for the shop."""

from datetime import UTC, date as date_type, datetime
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import require_non_negative
from ledger_kernel.exceptions import EntityNotFoundError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.shop import Employee, Part
from ledger_kernel.services.base import BaseService

logger = get_logger("services.shop")


def _as_instant(value: datetime | date_type | None, field: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValidationError(f"{field} must be timezone-aware", field=field, value=value)
        return value
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


def _optional(value: str | None) -> str | None:
    cleaned = (value or "").strip()
    return cleaned or None


class EmployeeService(BaseService):
    def list_employees(self) -> list[Employee]:
        return self.store.find(Employee, order_by=Employee.name)

    def get_employee(self, employee_id: UUID) -> Employee:
        employee = self.store.get(Employee, employee_id)
        if employee is None:
            raise EntityNotFoundError("Employee", employee_id)
        return employee

    def create_employee(
        self,
        name: str,
        phone: str,
        salary: Decimal | int | str = Decimal("0"),
        join_date: datetime | date_type | None = None,
        designation: str | None = None,
        email: str | None = None,
        national_id: str | None = None,
        visa_expiry: datetime | date_type | None = None,
    ) -> Employee:
        """
        Raises:
            ValidationError: Missing name or phone, negative salary.
        """
        name = self._require_name(name)
        phone = self._require_name(phone, "phone")
        amount = require_non_negative(salary, "salary")
        joined = _as_instant(join_date, "join_date") or self.clock.now()
        expiry = _as_instant(visa_expiry, "visa_expiry")

        with self.store.atomic("create_employee"):
            now = self.clock.now()
            employee = self.store.create(
                Employee,
                name=name,
                phone=phone,
                salary=amount,
                join_date=joined,
                designation=_optional(designation),
                email=_optional(email),
                national_id=_optional(national_id),
                visa_expiry=expiry,
                created_at=now,
                updated_at=now,
            )
        logger.info("employee_created", extra={"employee_id": str(employee.id)})
        return employee

    def update_employee(self, employee_id: UUID, **changes) -> Employee:
        """
        Update the given fields.  Accepts the keyword arguments of
        ``create_employee``; unknown keys raise ValidationError.
        """
        employee = self.get_employee(employee_id)
        values: dict = {}
        for key, value in changes.items():
            if key == "name":
                values[key] = self._require_name(value)
            elif key == "phone":
                values[key] = self._require_name(value, "phone")
            elif key == "salary":
                values[key] = require_non_negative(value, "salary")
            elif key in ("join_date", "visa_expiry"):
                values[key] = _as_instant(value, key)
                if key == "join_date" and values[key] is None:
                    raise ValidationError("join_date is required", field=key)
            elif key in ("designation", "email", "national_id"):
                values[key] = _optional(value)
            else:
                raise ValidationError(f"Unknown employee field: {key}", field=key)

        with self.store.atomic("update_employee"):
            for key, value in values.items():
                setattr(employee, key, value)
            employee.updated_at = self.clock.now()
        logger.info("employee_updated", extra={"employee_id": str(employee.id)})
        return employee

    def delete_employee(self, employee_id: UUID) -> None:
        employee = self.get_employee(employee_id)
        with self.store.atomic("delete_employee"):
            self.store.delete(employee)
        logger.info("employee_deleted", extra={"employee_id": str(employee_id)})


class PartService(BaseService):
    def list_parts(self) -> list[Part]:
        return self.store.find(Part, order_by=Part.name)

    def get_part(self, part_id: UUID) -> Part:
        part = self.store.get(Part, part_id)
        if part is None:
            raise EntityNotFoundError("Part", part_id)
        return part

    @staticmethod
    def _quantity(value) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                "quantity must be a non-negative integer", field="quantity", value=value
            )
        return value

    def create_part(
        self,
        name: str,
        price: Decimal | int | str = Decimal("0"),
        quantity: int = 0,
        part_number: str | None = None,
        customer: str | None = None,
        vehicle: str | None = None,
        supplier: str | None = None,
    ) -> Part:
        name = self._require_name(name)
        amount = require_non_negative(price, "price")
        count = self._quantity(quantity)

        with self.store.atomic("create_part"):
            now = self.clock.now()
            part = self.store.create(
                Part,
                name=name,
                price=amount,
                quantity=count,
                part_number=_optional(part_number),
                customer=_optional(customer),
                vehicle=_optional(vehicle),
                supplier=_optional(supplier),
                created_at=now,
                updated_at=now,
            )
        logger.info("part_created", extra={"part_id": str(part.id)})
        return part

    def update_part(self, part_id: UUID, **changes) -> Part:
        part = self.get_part(part_id)
        values: dict = {}
        for key, value in changes.items():
            if key == "name":
                values[key] = self._require_name(value)
            elif key == "price":
                values[key] = require_non_negative(value, "price")
            elif key == "quantity":
                values[key] = self._quantity(value)
            elif key in ("part_number", "customer", "vehicle", "supplier"):
                values[key] = _optional(value)
            else:
                raise ValidationError(f"Unknown part field: {key}", field=key)

        with self.store.atomic("update_part"):
            for key, value in values.items():
                setattr(part, key, value)
            part.updated_at = self.clock.now()
        logger.info("part_updated", extra={"part_id": str(part.id)})
        return part

    def delete_part(self, part_id: UUID) -> None:
        part = self.get_part(part_id)
        with self.store.atomic("delete_part"):
            self.store.delete(part)
        logger.info("part_deleted", extra={"part_id": str(part_id)})
