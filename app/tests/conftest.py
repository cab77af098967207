"""Shared fixtures for the notification pipeline tests."""

import copy
from datetime import date
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from infrastructure.configuration import BrevoSettings
from infrastructure.notifications import (
    Channel,
    InMemoryUserDirectory,
    NotificationDispatcher,
    NotificationPayload,
    NotificationRule,
    NotificationService,
    PayloadBuilder,
    Recipient,
    RecipientResolver,
    RuleStore,
    UserRecord,
)
from infrastructure.notifications.channels import (
    BroadcastChannel,
    DatabaseChannel,
    EmailChannel,
    InMemoryBroadcaster,
    InMemoryNotificationStore,
)
from infrastructure.notifications.rules import parse_notification_config
from infrastructure.operations import OperationResult
from integrations.brevo import BrevoClient
from modules.hr import build_relation_registry, build_serializer_registry
from modules.hr.entities import Company, Contract, Department, Employee, LeaveRequest

RULES_DATA: Dict[str, Any] = {
    "channels": {
        "database": {"enabled": True},
        "broadcast": {"enabled": True},
        "mail": {"enabled": True},
    },
    "email_templates": {
        "default_template": 46,
        "templates": {
            "emails.contract.updated": 46,
            "emails.contract.expiring": 46,
            "company.created": 53,
        },
        "template_variables": {
            46: {"SUBJECT": "subject", "TITLE": "title", "MESSAGE": "message"},
            53: {
                "COMPANY_NAME": "company_name",
                "COMPANY_ID": "company_id",
                "COMPANY_CREATION_DAY": "company_creation_day",
            },
        },
    },
    "rules": {
        "contract": {
            "updated": {
                "recipients": {"roles": ["RRHH"], "relationships": ["manager"]},
                "channels": ["database", "broadcast", "mail"],
                "templates": {
                    "title": "Contrato Actualizado: {file_number}",
                    "content": "Se ha actualizado el contrato de {employee_name}.",
                    "mail": {
                        "subject": "Actualización de Contrato",
                        "template": "emails.contract.updated",
                    },
                },
                "database": {"custom_fields": ["contract_id", "action_type"]},
            },
            "expiring": {
                "recipients": {"employee": True, "relationships": ["manager"]},
                "channels": ["database"],
                "templates": {
                    "title": "Contrato Próximo a Finalizar: {file_number}",
                    "content": "Finaliza en {days_remaining} días",
                },
                "scheduled": True,
            },
        },
        "company": {
            "created": {
                "recipients": {"roles": ["Administrator"], "exclude_actor": True},
                "channels": ["database", "mail"],
                "templates": {
                    "title": "Nueva Empresa: {name}",
                    "content": "Se ha creado una nueva empresa en el sistema: {name}",
                    "mail": {"template": "company.created"},
                },
            },
        },
    },
}


@pytest.fixture
def rules_data():
    """Deep copy of the reference rules mapping, safe to mutate per test."""
    return copy.deepcopy(RULES_DATA)


@pytest.fixture
def rule_store_factory(rules_data):
    """Factory for RuleStore instances built from a rules mapping.

    Example:
        store = rule_store_factory(channel_flags={"email": False})
    """

    def _factory(
        data: Optional[Dict[str, Any]] = None,
        channel_flags: Optional[Dict[str, bool]] = None,
    ) -> RuleStore:
        config = parse_notification_config(data if data is not None else rules_data)
        return RuleStore(config, channel_flags=channel_flags)

    return _factory


@pytest.fixture
def rule_store(rule_store_factory):
    return rule_store_factory()


@pytest.fixture
def rule_factory():
    """Factory for NotificationRule instances."""

    def _factory(
        entity_type: str = "contract",
        action: str = "updated",
        channels: Optional[List[str]] = None,
        **kwargs,
    ) -> NotificationRule:
        return NotificationRule(
            entity_type=entity_type,
            action=action,
            channels=channels if channels is not None else ["database", "broadcast", "email"],
            **kwargs,
        )

    return _factory


@pytest.fixture
def user_factory():
    """Factory for directory users."""

    def _factory(
        id: int = 1,
        name: str = "Ana García",
        email: Optional[str] = "ana@example.com",
        roles: Optional[List[str]] = None,
        permissions: Optional[List[str]] = None,
    ) -> UserRecord:
        return UserRecord(
            id=id,
            name=name,
            email=email,
            roles=tuple(roles or ()),
            permissions=tuple(permissions or ()),
        )

    return _factory


@pytest.fixture
def recipient_factory():
    """Factory for resolved recipients."""

    def _factory(
        user_id: int = 1,
        name: str = "Ana García",
        email: Optional[str] = "ana@example.com",
        audience: str = "user",
    ) -> Recipient:
        return Recipient(user_id=user_id, name=name, email=email, audience=audience)

    return _factory


@pytest.fixture
def payload_factory():
    """Factory for notification payloads."""

    def _factory(**kwargs) -> NotificationPayload:
        values: Dict[str, Any] = {
            "entity_type": "contract",
            "entity_id": 10,
            "action": "updated",
            "title": "Contrato Actualizado: EXP-10",
            "message": "Se ha actualizado el contrato de Luis Pérez.",
        }
        values.update(kwargs)
        return NotificationPayload(**values)

    return _factory


@pytest.fixture
def employee_factory():
    """Factory for HR employees."""

    def _factory(
        id: int = 100,
        first_name: str = "Luis",
        last_name: str = "Pérez",
        user_id: Optional[int] = 20,
        manager_user_id: Optional[int] = 30,
        department: Optional[Department] = None,
    ) -> Employee:
        return Employee(
            id=id,
            first_name=first_name,
            last_name=last_name,
            email="luis@example.com",
            user_id=user_id,
            manager_user_id=manager_user_id,
            department=department,
        )

    return _factory


@pytest.fixture
def contract_factory(employee_factory):
    """Factory for HR contracts."""

    def _factory(
        id: int = 10,
        employee: Optional[Employee] = None,
        file_number: str = "EXP-10",
        contract_type: str = "Indefinido",
        start_date: Optional[date] = date(2024, 1, 1),
        end_date: Optional[date] = date(2026, 12, 31),
    ) -> Contract:
        return Contract(
            id=id,
            employee=employee or employee_factory(),
            file_number=file_number,
            contract_type=contract_type,
            start_date=start_date,
            end_date=end_date,
        )

    return _factory


@pytest.fixture
def company_factory():
    def _factory(id: int = 5, name: str = "Acme") -> Company:
        return Company(id=id, name=name, tax_id="B12345678")

    return _factory


@pytest.fixture
def leave_request_factory(employee_factory):
    def _factory(id: int = 7, employee: Optional[Employee] = None) -> LeaveRequest:
        return LeaveRequest(
            id=id,
            employee=employee or employee_factory(),
            leave_type="Vacaciones",
            start_date=date(2026, 8, 1),
            end_date=date(2026, 8, 15),
        )

    return _factory


@pytest.fixture
def brevo_settings():
    """Brevo settings with a test key and sender."""
    return BrevoSettings(
        BREVO_API_KEY="test-api-key",
        BREVO_API_URL="https://api.brevo.test",
        BREVO_SENDER_NAME="RRHH",
        BREVO_SENDER_EMAIL="rrhh@example.com",
        BREVO_TIMEOUT_SECONDS=5.0,
        BREVO_VERIFY_TLS=True,
    )


@pytest.fixture
def mock_brevo_client():
    """BrevoClient mock whose sends succeed."""
    client = MagicMock(spec=BrevoClient)
    client.send.return_value = OperationResult.success(
        data={"message_id": "<msg-1@smtp-relay.brevo.com>", "body": {}},
        status_code=201,
    )
    client.health_check.return_value = OperationResult.success()
    return client


@pytest.fixture
def hr_directory(user_factory):
    """Directory with two RRHH users, the employee's account and the manager."""
    return InMemoryUserDirectory(
        [
            user_factory(id=1, name="Marta RRHH", email="marta@example.com", roles=["RRHH"]),
            user_factory(id=2, name="Jorge RRHH", email="jorge@example.com", roles=["RRHH"]),
            user_factory(id=4, name="Pablo Admin", email="pablo@example.com", roles=["Administrator"]),
            user_factory(id=20, name="Luis Pérez", email="luis@example.com"),
            user_factory(id=30, name="Carmen Jefa", email="carmen@example.com"),
        ]
    )


@pytest.fixture
def service_factory(rule_store, hr_directory, mock_brevo_client):
    """Factory for NotificationService instances wired with in-memory collaborators.

    The returned service exposes its collaborators as attributes of the
    factory result for assertions:

        service = service_factory()
        service.notify("contract", contract, "updated")
        service.dispatcher.channels[Channel.DATABASE].store.all()
    """

    def _factory(
        store: Optional[RuleStore] = None,
        client: Any = None,
        max_workers: int = 1,
    ) -> NotificationService:
        rules = store or rule_store
        return NotificationService(
            rule_store=rules,
            resolver=RecipientResolver(hr_directory, build_relation_registry()),
            builder=PayloadBuilder(rules, build_serializer_registry()),
            dispatcher=NotificationDispatcher(
                channels={
                    Channel.DATABASE: DatabaseChannel(InMemoryNotificationStore(), default_sender_id=1),
                    Channel.BROADCAST: BroadcastChannel(InMemoryBroadcaster()),
                    Channel.EMAIL: EmailChannel(client or mock_brevo_client),
                },
                max_workers=max_workers,
            ),
        )

    return _factory
