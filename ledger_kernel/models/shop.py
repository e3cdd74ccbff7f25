"""Shop records kept alongside the ledger: employees (payroll) and spare parts."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Employee(TrackedBase):
    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str] = mapped_column(String(50), nullable=False)

    salary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    designation: Mapped[str | None] = mapped_column(String(100), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Emirates ID or other national identity number
    national_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    visa_expiry: Mapped[datetime | None] = mapped_column(nullable=True)

    join_date: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Employee {self.name}>"


class Part(TrackedBase):
    __tablename__ = "parts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    part_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    customer: Mapped[str | None] = mapped_column(String(255), nullable=True)

    vehicle: Mapped[str | None] = mapped_column(String(255), nullable=True)

    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Part {self.name} x{self.quantity}>"
