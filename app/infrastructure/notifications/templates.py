"""Payload building: entity serialization, interpolation and email templates.

Template id precedence for the email part of a payload:

1. ``template_id`` set on the rule or on the audience override; an override
   only replaces the email fields it sets
2. the binding of the logical template key (``mail.template``, else
   ``"{entity_type}.{action}"``)
3. the configured default template (46)

Every variable mapped for the resolved template must have a value, otherwise
the build fails with MissingTemplateVariableError before any channel runs.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import (
    MissingTemplateVariableError,
    UnknownEntityTypeError,
)
from infrastructure.notifications.models import (
    Channel,
    EmailContent,
    EmailTemplateRef,
    NotificationPayload,
    NotificationRule,
    RoleContent,
    TemplateBinding,
)
from infrastructure.notifications.rules import RuleStore

logger = get_module_logger()

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][\w.]*)\}")
DEFAULT_SUBJECT = "Notificación del Sistema"

_MISSING = object()

Serializer = Callable[[Any], Dict[str, Any]]


def resolve_path(data: Any, path: str) -> Any:
    """Look up a dotted path in nested mappings or object attributes.

    Raises:
        KeyError: If any segment of the path is absent.
    """
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                raise KeyError(path)
            current = current[part]
        else:
            value = getattr(current, part, _MISSING)
            if value is _MISSING:
                raise KeyError(path)
            current = value
    return current


def interpolate(template: Optional[str], context: Mapping[str, Any]) -> str:
    """Replace ``{name}`` and ``{a.b}`` placeholders from ``context``.

    Unknown placeholders are left verbatim; None renders as an empty string.
    """
    if not template:
        return ""

    def replace(match: "re.Match[str]") -> str:
        try:
            value = resolve_path(context, match.group(1))
        except KeyError:
            return match.group(0)
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def pluralize(entity_type: str) -> str:
    if entity_type.endswith("y") and not entity_type.endswith(("ay", "ey", "oy", "uy")):
        return entity_type[:-1] + "ies"
    if entity_type.endswith(("s", "x", "ch", "sh")):
        return entity_type + "es"
    return entity_type + "s"


def action_link(entity_type: str, entity_id: Any, action: str, base_url: str = "") -> Tuple[str, str]:
    """Link and label for the notification action button.

    ``deleted`` links to the entity index, every other action to the entity.
    """
    plural = pluralize(entity_type)
    if action == "deleted" or entity_id is None:
        return f"{base_url}/admin/{plural}", "Ver Lista"
    return f"{base_url}/admin/{plural}/{entity_id}", "Ver Detalles"


class SerializerRegistry:
    """Explicit entity type → canonical field map serializers.

    Example:
        serializers = SerializerRegistry()

        @serializers.register("company")
        def serialize_company(company):
            return {"id": company.id, "name": company.name}
    """

    def __init__(self):
        self._serializers: Dict[str, Serializer] = {}

    def register(self, entity_type: str, serializer: Optional[Serializer] = None):
        def decorator(fn: Serializer) -> Serializer:
            self._serializers[entity_type] = fn
            return fn

        if serializer is not None:
            return decorator(serializer)
        return decorator

    def serialize(self, entity_type: str, entity: Any) -> Dict[str, Any]:
        """Serialize ``entity`` with the serializer of ``entity_type``.

        Raises:
            UnknownEntityTypeError: If no serializer is registered.
        """
        serializer = self._serializers.get(entity_type)
        if serializer is None:
            raise UnknownEntityTypeError(entity_type)
        return dict(serializer(entity))

    def __contains__(self, entity_type: str) -> bool:
        return entity_type in self._serializers


def merge_email_refs(
    base: Optional[EmailTemplateRef], override: Optional[EmailTemplateRef]
) -> Optional[EmailTemplateRef]:
    """Overlay the fields an audience override sets on the rule's email ref."""
    if override is None:
        return base
    if base is None:
        return override
    return base.model_copy(update=override.model_dump(exclude_none=True))


class PayloadBuilder:
    """Builds immutable payloads from a rule, an entity and extra values.

    Attributes:
        rule_store: Source of template bindings and channel switches
        serializers: Entity serializers
        base_url: Prefix of action links
    """

    def __init__(
        self,
        rule_store: RuleStore,
        serializers: SerializerRegistry,
        base_url: str = "",
    ):
        self.rule_store = rule_store
        self.serializers = serializers
        self.base_url = base_url.rstrip("/")

    def build(
        self,
        rule: NotificationRule,
        entity: Any,
        extra: Optional[Mapping[str, Any]] = None,
        actor_id: Optional[int] = None,
        audience: Optional[str] = None,
    ) -> NotificationPayload:
        """Build the payload for one audience.

        Raises:
            UnknownEntityTypeError: If the entity type has no serializer.
            MissingTemplateVariableError: If the resolved email template
                needs values the payload does not have.
        """
        fields = self.serializers.serialize(rule.entity_type, entity)
        extra = dict(extra or {})
        context: Dict[str, Any] = {**fields, **extra}

        override = rule.role_based.get(audience) if audience else None
        title = interpolate(self._pick(override, "title", rule.title), context)
        message = interpolate(self._pick(override, "content", rule.content), context)

        entity_id = fields.get("id")
        action_url, action_text = action_link(
            rule.entity_type, entity_id, rule.action, self.base_url
        )

        email = None
        if Channel.EMAIL in rule.channels and self.rule_store.is_channel_enabled(Channel.EMAIL):
            email = self._build_email(
                rule,
                override,
                {
                    **context,
                    "title": title,
                    "message": message,
                    "content": message,
                    "action_url": action_url,
                    "action_text": action_text,
                },
            )

        return NotificationPayload(
            entity_type=rule.entity_type,
            entity_id=entity_id,
            action=rule.action,
            title=title,
            message=message,
            fields=fields,
            custom_fields=self._custom_fields(rule, context),
            extra=extra,
            actor_id=actor_id,
            action_url=action_url,
            action_text=action_text,
            email=email,
        )

    def resolve_binding(
        self, rule: NotificationRule, ref: Optional[EmailTemplateRef] = None
    ) -> TemplateBinding:
        """Resolve the provider template for a rule.

        Args:
            rule: Rule being dispatched
            ref: Email reference to use instead of ``rule.email`` (audience
                override)
        """
        ref = ref or rule.email
        store = self.rule_store

        if ref is not None and ref.template_id is not None:
            return TemplateBinding(
                key=ref.template or rule.key,
                template_id=ref.template_id,
                variables=store.template_variables(ref.template_id),
            )

        key = ref.template if ref is not None and ref.template else rule.key
        binding = store.get_template_binding(key)
        if binding is not None:
            return binding

        logger.info(
            "email_template_key_unbound",
            template_key=key,
            default_template_id=store.default_template_id,
        )
        return store.default_binding()

    def _build_email(
        self,
        rule: NotificationRule,
        override: Optional[RoleContent],
        context: Dict[str, Any],
    ) -> EmailContent:
        ref = merge_email_refs(rule.email, override.email if override is not None else None)
        subject_template = ref.subject if ref is not None and ref.subject else None
        subject = interpolate(subject_template, context) or context["title"] or DEFAULT_SUBJECT
        binding = self.resolve_binding(rule, ref)

        variables_context = {**context, "subject": subject}
        variables, missing = self._map_variables(binding.variables, variables_context)
        if missing:
            raise MissingTemplateVariableError(binding.template_id, missing, key=binding.key)

        return EmailContent(template_id=binding.template_id, subject=subject, variables=variables)

    @staticmethod
    def _map_variables(
        mapping: Mapping[str, str], context: Mapping[str, Any]
    ) -> Tuple[Dict[str, Any], List[str]]:
        variables: Dict[str, Any] = {}
        missing: List[str] = []
        for name, path in mapping.items():
            try:
                value = resolve_path(context, path)
            except KeyError:
                value = None
            if value is None:
                missing.append(name)
            else:
                variables[name] = value
        return variables, missing

    @staticmethod
    def _pick(override: Optional[RoleContent], attr: str, default: str) -> str:
        if override is not None and getattr(override, attr):
            return getattr(override, attr)
        return default

    @staticmethod
    def _custom_fields(rule: NotificationRule, context: Mapping[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for name in rule.custom_fields:
            if name == "action_type":
                values[name] = rule.action
                continue
            try:
                values[name] = resolve_path(context, name)
            except KeyError:
                continue
        return values
