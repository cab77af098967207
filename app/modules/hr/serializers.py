"""Canonical field maps for HR entities.

Each serializer returns the fields available to notification templates and
to provider template variables. Dates are rendered as ``dd/mm/YYYY``.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from infrastructure.notifications import SerializerRegistry
from modules.hr.entities import (
    Company,
    Contract,
    Department,
    Employee,
    LeaveRequest,
    User,
    WorkSchedule,
)

DATE_FORMAT = "%d/%m/%Y"


def format_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime(DATE_FORMAT)


def employee_fields(employee: Employee) -> Dict[str, Any]:
    return {
        "id": employee.id,
        "name": employee.full_name,
        "nif": employee.nif,
        "email": employee.email,
        "phone": employee.phone,
    }


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "user_id": user.id,
        "name": user.name,
        "email": user.email,
        "username": user.username or user.email,
        "user": {"id": user.id, "name": user.name, "email": user.email},
    }


def serialize_company(company: Company) -> Dict[str, Any]:
    created = format_date(company.created_at) or format_date(date.today())
    updated = format_date(company.updated_at) or created
    return {
        "id": company.id,
        "company_id": company.id,
        "name": company.name,
        "company_name": company.name,
        "tax_id": company.tax_id,
        "company_creation_day": created,
        "company_update_day": updated,
        "company": {
            "name": company.name,
            "tax_id": company.tax_id,
            "email": company.email,
            "phone": company.phone,
        },
    }


def serialize_employee(employee: Employee) -> Dict[str, Any]:
    fields = employee_fields(employee)
    return {
        **fields,
        "employee_id": employee.id,
        "employee_name": employee.full_name,
        "first_name": employee.first_name,
        "last_name": " ".join(p for p in (employee.last_name, employee.second_last_name) if p),
        "department_name": employee.department.name if employee.department else None,
        "employee": fields,
    }


def serialize_department(department: Department) -> Dict[str, Any]:
    return {
        "id": department.id,
        "department_id": department.id,
        "name": department.name,
        "description": department.description,
        "manager_name": department.manager.full_name if department.manager else None,
        "department": {"name": department.name, "description": department.description},
    }


def serialize_contract(contract: Contract) -> Dict[str, Any]:
    employee = contract.employee
    start = format_date(contract.start_date)
    end = format_date(contract.end_date)
    return {
        "id": contract.id,
        "contract_id": contract.id,
        "file_number": contract.file_number,
        "contract_type": contract.contract_type,
        "start_date": start,
        "end_date": end or "indefinido",
        "employee_name": employee.full_name,
        "contract_details": f"{contract.contract_type} ({start or '-'} - {end or 'indefinido'})",
        "name": employee.full_name,
        "employee_id": employee.id,
        "last_contract_id": contract.id,
        "employee": employee_fields(employee),
    }


def serialize_leave_request(leave: LeaveRequest) -> Dict[str, Any]:
    employee = leave.employee
    return {
        "id": leave.id,
        "leave_request_id": leave.id,
        "leave_type": leave.leave_type,
        "status": leave.status,
        "start_date": format_date(leave.start_date),
        "end_date": format_date(leave.end_date),
        "reason": leave.reason,
        "employee_name": employee.full_name,
        "employee": employee_fields(employee),
    }


def serialize_work_schedule(schedule: WorkSchedule) -> Dict[str, Any]:
    employee = schedule.employee
    day = format_date(schedule.day)
    return {
        "id": schedule.id,
        "schedule_id": schedule.id,
        "day": day,
        "start_time": schedule.start_time,
        "end_time": schedule.end_time,
        "schedule_details": f"{day} {schedule.start_time}-{schedule.end_time}",
        "employee_name": employee.full_name,
        "employee": employee_fields(employee),
    }


def build_serializer_registry() -> SerializerRegistry:
    """Serializer registry for every HR entity type."""
    registry = SerializerRegistry()
    registry.register("user", serialize_user)
    registry.register("company", serialize_company)
    registry.register("employee", serialize_employee)
    registry.register("department", serialize_department)
    registry.register("contract", serialize_contract)
    registry.register("leave_request", serialize_leave_request)
    registry.register("work_schedule", serialize_work_schedule)
    return registry
