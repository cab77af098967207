"""HR module: entities, serializers, recipient relations and event wiring
for the notification pipeline."""

from modules.hr.events import HR_EVENT_TYPES, build_event_registry
from modules.hr.relations import build_relation_registry
from modules.hr.reminders import schedule_contract_expiry
from modules.hr.serializers import build_serializer_registry

__all__ = [
    "HR_EVENT_TYPES",
    "build_event_registry",
    "build_relation_registry",
    "build_serializer_registry",
    "schedule_contract_expiry",
]
