"""Rule store backed by a YAML rules file.

The rules file has three top-level sections:

    channels:            # channel name → {enabled: bool}
    email_templates:     # default_template, templates, template_variables
    rules:               # entity type → action → rule definition

A rule definition:

    recipients:
      roles: [Human Resources]
      permissions: [viewContractsPanel]
      relationships: [manager]      # or {manager: true}
      employee: true                # shorthand for relationships: [employee]
      user: true                    # shorthand for relationships: [user]
      user_ids: [1]
      user_emails: [rrhh@example.com]
      actor: true
      exclude_actor: true
    channels: [broadcast, mail, database]
    templates:
      title: "Contrato Actualizado: {file_number}"
      content: "..."
      mail: {subject: "...", template: emails.contract.updated, template_id: 46}
      role_based:
        manager: {title: "...", content: "...", mail: {...}}
    database:
      custom_fields: [contract_id, action_type]
    scheduled: false

Usage:
    store = RuleStore.from_file("config/notifications.yml", settings.notifications)
    rule = store.get_rule("contract", "updated")
"""

import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import (
    NotificationConfigError,
    UnknownTemplateError,
)
from infrastructure.notifications.models import (
    Channel,
    EmailTemplateRef,
    NotificationConfig,
    NotificationRule,
    RecipientSelector,
    RoleContent,
    SelectorKind,
    TemplateBinding,
)

logger = get_module_logger()

APP_ROOT = Path(__file__).resolve().parents[2]

# recipients key → selector kind
_LIST_SELECTORS = {
    "roles": SelectorKind.ROLE,
    "permissions": SelectorKind.PERMISSION,
    "relationships": SelectorKind.RELATION,
    "user_ids": SelectorKind.USER_ID,
    "user_emails": SelectorKind.USER_EMAIL,
}

# boolean shorthands expanding to a relation of the same name
_RELATION_FLAGS = ("employee", "user")


def resolve_rules_path(path: Union[str, Path]) -> Path:
    """Resolve a rules file path.

    Relative paths are tried against the working directory first and then
    against the application root.
    """
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return APP_ROOT / candidate


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [key for key, enabled in value.items() if enabled]
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _parse_selectors(recipients: Mapping[str, Any]) -> List[RecipientSelector]:
    selectors: List[RecipientSelector] = []
    for key, value in recipients.items():
        if key == "exclude_actor":
            continue
        if key in _LIST_SELECTORS:
            values = _as_list(value)
            if values:
                selectors.append(
                    RecipientSelector(kind=_LIST_SELECTORS[key], values=tuple(values))
                )
        elif key in _RELATION_FLAGS:
            if value:
                selectors.append(
                    RecipientSelector(kind=SelectorKind.RELATION, values=(key,))
                )
        elif key == "actor":
            if value:
                selectors.append(RecipientSelector(kind=SelectorKind.ACTOR))
        else:
            raise NotificationConfigError(f"Unknown recipient selector: {key}")
    return selectors


def _parse_email_ref(mail: Optional[Mapping[str, Any]]) -> Optional[EmailTemplateRef]:
    if not mail:
        return None
    return EmailTemplateRef(
        subject=mail.get("subject"),
        template=mail.get("template"),
        template_id=mail.get("template_id"),
    )


def _parse_rule(entity_type: str, action: str, data: Mapping[str, Any]) -> NotificationRule:
    recipients = data.get("recipients") or {}
    templates = data.get("templates") or {}
    database = data.get("database") or {}

    role_based = {
        audience: RoleContent(
            title=override.get("title"),
            content=override.get("content"),
            email=_parse_email_ref(override.get("mail")),
        )
        for audience, override in (templates.get("role_based") or {}).items()
    }

    return NotificationRule(
        entity_type=entity_type,
        action=action,
        selectors=tuple(_parse_selectors(recipients)),
        exclude_actor=bool(recipients.get("exclude_actor", False)),
        channels=data.get("channels") or [],
        title=templates.get("title", ""),
        content=templates.get("content", ""),
        role_based=role_based,
        email=_parse_email_ref(templates.get("mail")),
        custom_fields=tuple(database.get("custom_fields") or ()),
        scheduled=bool(data.get("scheduled", False)),
    )


def parse_notification_config(data: Optional[Mapping[str, Any]]) -> NotificationConfig:
    """Build a NotificationConfig from the parsed rules mapping.

    Raises:
        NotificationConfigError: If a section has the wrong shape or a rule
            references an unknown channel or selector.
    """
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise NotificationConfigError("Rules file must contain a mapping")

    try:
        channels: Dict[Channel, bool] = {}
        for name, options in (data.get("channels") or {}).items():
            enabled = options.get("enabled", True) if isinstance(options, Mapping) else bool(options)
            channels[Channel.parse(name)] = bool(enabled)

        email_templates = data.get("email_templates") or {}
        template_variables = {
            int(template_id): {str(k): str(v) for k, v in (mapping or {}).items()}
            for template_id, mapping in (email_templates.get("template_variables") or {}).items()
        }
        templates = {
            str(key): int(template_id)
            for key, template_id in (email_templates.get("templates") or {}).items()
        }

        rules: Dict[str, Dict[str, NotificationRule]] = {}
        for entity_type, actions in (data.get("rules") or {}).items():
            rules[entity_type] = {
                action: _parse_rule(entity_type, action, rule_data or {})
                for action, rule_data in (actions or {}).items()
            }

        return NotificationConfig(
            rules=rules,
            channels=channels,
            default_template_id=int(email_templates.get("default_template", 46)),
            templates=templates,
            template_variables=template_variables,
        )
    except NotificationConfigError:
        raise
    except (AttributeError, TypeError, ValueError, ValidationError) as e:
        raise NotificationConfigError(f"Invalid notification config: {e}") from e


def load_notification_config(path: Union[str, Path]) -> NotificationConfig:
    """Load and validate the YAML rules file.

    Raises:
        NotificationConfigError: If the file cannot be read or is malformed.
    """
    rules_path = resolve_rules_path(path)
    try:
        with open(rules_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise NotificationConfigError(f"Cannot read rules file {rules_path}: {e}") from e
    except yaml.YAMLError as e:
        raise NotificationConfigError(f"Invalid YAML in {rules_path}: {e}") from e

    config = parse_notification_config(data)
    logger.info(
        "notification_config_loaded",
        path=str(rules_path),
        rule_count=sum(len(actions) for actions in config.rules.values()),
        template_count=len(config.templates),
    )
    return config


class RuleStore:
    """Read-only access to the current notification config snapshot.

    Readers never lock: the snapshot is immutable and ``reload()`` swaps the
    reference under a lock. A failed reload keeps the previous snapshot.

    Attributes:
        config: Current NotificationConfig snapshot
        channel_flags: Global kill switches (channel name → enabled) from
            settings; a channel is enabled only if both the rules file and the
            flag enable it
    """

    def __init__(
        self,
        config: NotificationConfig,
        channel_flags: Optional[Mapping[str, bool]] = None,
        source: Optional[Union[str, Path]] = None,
    ):
        self._config = config
        self._channel_flags = dict(channel_flags or {})
        self._source = source
        self._reload_lock = threading.Lock()

    @classmethod
    def from_file(cls, path: Union[str, Path], settings=None) -> "RuleStore":
        """Load a RuleStore from a rules file.

        Args:
            path: YAML rules file
            settings: Optional NotificationSettings providing channel flags
        """
        flags = settings.channel_flags() if settings is not None else None
        return cls(load_notification_config(path), channel_flags=flags, source=path)

    @property
    def config(self) -> NotificationConfig:
        return self._config

    @property
    def default_template_id(self) -> int:
        return self._config.default_template_id

    def get_rule(self, entity_type: str, action: str) -> Optional[NotificationRule]:
        """Return the rule for (entity_type, action), or None if not configured."""
        return self._config.rules.get(entity_type, {}).get(action)

    def is_channel_enabled(self, channel: Union[str, Channel]) -> bool:
        """Global kill switch for a channel.

        Unknown channel names are reported as disabled.
        """
        try:
            channel = Channel.parse(channel)
        except ValueError:
            return False
        if not self._channel_flags.get(channel.value, True):
            return False
        return self._config.channels.get(channel, True)

    def enabled_channels(self) -> List[Channel]:
        return [channel for channel in Channel if self.is_channel_enabled(channel)]

    def get_template_binding(self, key: str, strict: bool = False) -> Optional[TemplateBinding]:
        """Return the binding for a logical template key, or None if unknown.

        A template id without its own variable mapping uses the mapping of the
        default template.

        Raises:
            UnknownTemplateError: If ``strict`` and the key is not configured.
        """
        template_id = self._config.templates.get(key)
        if template_id is None:
            if strict:
                raise UnknownTemplateError(key)
            return None
        return TemplateBinding(
            key=key,
            template_id=template_id,
            variables=self.template_variables(template_id),
        )

    def default_binding(self) -> TemplateBinding:
        template_id = self._config.default_template_id
        return TemplateBinding(
            key="default",
            template_id=template_id,
            variables=self.template_variables(template_id),
        )

    def template_variables(self, template_id: int) -> Dict[str, str]:
        variables = self._config.template_variables
        if template_id in variables:
            return dict(variables[template_id])
        return dict(variables.get(self._config.default_template_id, {}))

    def reload(self) -> NotificationConfig:
        """Re-read the rules file and swap the snapshot.

        Raises:
            NotificationConfigError: If the store has no source file or the
                file is malformed. The previous snapshot stays active.
        """
        if self._source is None:
            raise NotificationConfigError("Rule store has no source file to reload")
        with self._reload_lock:
            try:
                config = load_notification_config(self._source)
            except NotificationConfigError as e:
                logger.error(
                    "notification_config_reload_failed",
                    path=str(self._source),
                    error=str(e),
                )
                raise
            self._config = config
        logger.info("notification_config_reloaded", path=str(self._source))
        return config
