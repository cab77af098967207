"""HR entities consumed by the notification pipeline.

These are plain snapshots of the records owned by the HR back office; the
pipeline reads them and never persists them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


@dataclass
class User:
    id: int
    name: str
    email: Optional[str] = None
    username: Optional[str] = None


@dataclass
class Company:
    id: int
    name: str
    tax_id: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Employee:
    """An employee; ``user_id`` links to the login account, if any."""

    id: int
    first_name: str
    last_name: str = ""
    second_last_name: str = ""
    nif: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    user_id: Optional[int] = None
    manager_user_id: Optional[int] = None
    department: Optional["Department"] = None

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.last_name, self.second_last_name]
        return " ".join(p for p in parts if p)


@dataclass
class Department:
    id: int
    name: str
    description: str = ""
    manager: Optional[Employee] = None
    deputy: Optional[Employee] = None
    employees: List[Employee] = field(default_factory=list)


@dataclass
class Contract:
    id: int
    employee: Employee
    file_number: str
    contract_type: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class LeaveRequest:
    """A leave (permiso) or vacation request."""

    id: int
    employee: Employee
    leave_type: str
    start_date: date
    end_date: date
    status: str = "pending"
    reason: str = ""


@dataclass
class WorkSchedule:
    """A shift assigned to an employee."""

    id: int
    employee: Employee
    day: date
    start_time: str
    end_time: str
