"""Computed recipient relations for HR entities.

A relation receives the triggering entity and the user directory and returns
the related users. Missing links (no manager, employee without account)
simply yield no users.
"""

from typing import Any, List, Optional

from infrastructure.notifications import RelationRegistry, UserDirectory, UserRecord
from modules.hr.entities import Department, Employee, User


def employee_of(entity: Any) -> Employee:
    """Employee an entity is about.

    Raises:
        AttributeError: If the entity is not tied to an employee.
    """
    if isinstance(entity, Employee):
        return entity
    employee = entity.employee
    if employee is None:
        raise AttributeError(f"{type(entity).__name__} has no employee")
    return employee


def _user(directory: UserDirectory, user_id: Optional[int]) -> List[UserRecord]:
    if user_id is None:
        return []
    user = directory.get_user(user_id)
    return [user] if user is not None else []


def employee_user(entity: Any, directory: UserDirectory) -> List[UserRecord]:
    return _user(directory, employee_of(entity).user_id)


def employee_manager(entity: Any, directory: UserDirectory) -> List[UserRecord]:
    return _user(directory, employee_of(entity).manager_user_id)


def entity_user(entity: Any, directory: UserDirectory) -> List[UserRecord]:
    if isinstance(entity, User):
        return _user(directory, entity.id)
    return _user(directory, employee_of(entity).user_id)


def department_of(entity: Any) -> Department:
    if isinstance(entity, Department):
        return entity
    department = employee_of(entity).department
    if department is None:
        raise LookupError("employee has no department")
    return department


def department_manager(entity: Any, directory: UserDirectory) -> List[UserRecord]:
    manager = department_of(entity).manager
    return _user(directory, manager.user_id) if manager else []


def department_deputy(entity: Any, directory: UserDirectory) -> List[UserRecord]:
    deputy = department_of(entity).deputy
    return _user(directory, deputy.user_id) if deputy else []


def department_employees(entity: Any, directory: UserDirectory) -> List[UserRecord]:
    users: List[UserRecord] = []
    for employee in department_of(entity).employees:
        users.extend(_user(directory, employee.user_id))
    return users


def build_relation_registry() -> RelationRegistry:
    """Relation registry for HR entities.

    Audience labels: ``employee``, ``manager``, ``user``, ``deputy``.
    """
    registry = RelationRegistry()
    registry.register("employee", employee_user)
    registry.register("manager", employee_manager)
    registry.register("user", entity_user)
    registry.register("department_manager", department_manager, audience="manager")
    registry.register("department_deputy", department_deputy, audience="deputy")
    registry.register("department_employees", department_employees, audience="employee")
    return registry
