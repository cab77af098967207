"""Notification pipeline core models.

Rules and template bindings are loaded from configuration and never change
for the lifetime of a config snapshot. Recipients, payloads and delivery
attempts are built for one dispatch and discarded afterwards.

Uses Pydantic BaseModel for:
- RFC 5322 compliant email validation (EmailStr)
- Immutability of configuration and payload objects (frozen models)
- Normalization of config aliases (``mail`` → ``email``)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from infrastructure.notifications.exceptions import InvalidTransitionError

PRIVATE_CHANNEL_PREFIX = "private-user."
DEFAULT_AUDIENCE = "user"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Timezone-aware copy of ``value``; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Channel(str, Enum):
    """Delivery mechanisms supported by the dispatcher."""

    DATABASE = "database"
    BROADCAST = "broadcast"
    EMAIL = "email"

    @classmethod
    def parse(cls, value: Union[str, "Channel"]) -> "Channel":
        """Parse a channel name from configuration.

        ``mail`` is accepted as an alias of ``email``.

        Raises:
            ValueError: If the name is not a known channel.
        """
        if isinstance(value, Channel):
            return value
        name = str(value).strip().lower()
        if name == "mail":
            name = "email"
        return cls(name)


class SelectorKind(str, Enum):
    """Kinds of recipient selector clauses."""

    ROLE = "role"
    PERMISSION = "permission"
    RELATION = "relation"
    USER_ID = "user_id"
    USER_EMAIL = "user_email"
    ACTOR = "actor"


class RecipientSelector(BaseModel):
    """One clause of a rule's recipient set.

    Example:
        RecipientSelector(kind=SelectorKind.ROLE, values=["Human Resources"])
    """

    model_config = ConfigDict(frozen=True)

    kind: SelectorKind
    values: Tuple[Union[int, str], ...] = ()


class EmailTemplateRef(BaseModel):
    """Email settings of a rule or of a role-based override.

    Attributes:
        subject: Subject line, may contain ``{placeholder}`` markers
        template: Logical template key looked up in the template bindings
        template_id: Provider template id that overrides any binding
    """

    model_config = ConfigDict(frozen=True)

    subject: Optional[str] = None
    template: Optional[str] = None
    template_id: Optional[int] = None


class RoleContent(BaseModel):
    """Title, content and email overrides for one audience."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    content: Optional[str] = None
    email: Optional[EmailTemplateRef] = None


class NotificationRule(BaseModel):
    """Declarative notification rule for an (entity type, action) pair.

    Attributes:
        entity_type: Entity type the rule applies to (e.g. "contract")
        action: Action the rule applies to (e.g. "updated")
        selectors: Recipient selector clauses, evaluated in order
        exclude_actor: Remove the acting user after all clauses are merged
        channels: Channels requested by the rule
        title: Title template
        content: Content template
        role_based: Per-audience overrides of title, content and email
        email: Email subject and template reference
        custom_fields: Fields copied into the stored notification data
        scheduled: Whether the rule may be scheduled for a future date
    """

    model_config = ConfigDict(frozen=True)

    entity_type: str
    action: str
    selectors: Tuple[RecipientSelector, ...] = ()
    exclude_actor: bool = False
    channels: Tuple[Channel, ...] = ()
    title: str = ""
    content: str = ""
    role_based: Dict[str, RoleContent] = Field(default_factory=dict)
    email: Optional[EmailTemplateRef] = None
    custom_fields: Tuple[str, ...] = ()
    scheduled: bool = False

    @field_validator("channels", mode="before")
    @classmethod
    def normalize_channels(cls, v: Any) -> Tuple[Channel, ...]:
        """Parse channel names and drop duplicates while keeping order."""
        channels: List[Channel] = []
        for item in v or ():
            channel = Channel.parse(item)
            if channel not in channels:
                channels.append(channel)
        return tuple(channels)

    @property
    def key(self) -> str:
        return f"{self.entity_type}.{self.action}"


class TemplateBinding(BaseModel):
    """Maps a logical template key to a provider template and its variables.

    Attributes:
        key: Logical template key (e.g. "emails.contract.updated")
        template_id: Provider template id
        variables: Provider variable name → payload field path
    """

    model_config = ConfigDict(frozen=True)

    key: str
    template_id: int
    variables: Dict[str, str] = Field(default_factory=dict)


class NotificationConfig(BaseModel):
    """Snapshot of the notification configuration.

    Replaced as a whole by ``RuleStore.reload()``; never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    rules: Dict[str, Dict[str, NotificationRule]] = Field(default_factory=dict)
    channels: Dict[Channel, bool] = Field(default_factory=dict)
    default_template_id: int = 46
    templates: Dict[str, int] = Field(default_factory=dict)
    template_variables: Dict[int, Dict[str, str]] = Field(default_factory=dict)


class UserRecord(BaseModel):
    """A user as returned by the user directory."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    email: Optional[EmailStr] = None
    roles: Tuple[str, ...] = ()
    permissions: Tuple[str, ...] = ()


class Recipient(BaseModel):
    """A resolved principal for one dispatch.

    Attributes:
        user_id: Directory identifier, the deduplication key
        name: Display name used in the email ``to`` entry
        email: Email address (optional, email delivery is skipped without it)
        audience: Relation label that first matched this user

    Example:
        recipient = Recipient(user_id=7, name="Ana", email="ana@example.com")
        recipient.broadcast_channel  # "private-user.7"
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    name: str = ""
    email: Optional[EmailStr] = None
    audience: str = DEFAULT_AUDIENCE

    @property
    def broadcast_channel(self) -> str:
        return self.private_channel()

    def private_channel(self, prefix: str = PRIVATE_CHANNEL_PREFIX) -> str:
        """Name of the private real-time channel owned by this recipient."""
        return f"{prefix}{self.user_id}"

    @classmethod
    def from_user(
        cls, user: UserRecord, audience: str = DEFAULT_AUDIENCE
    ) -> "Recipient":
        return cls(user_id=user.id, name=user.name, email=user.email, audience=audience)


class EmailContent(BaseModel):
    """Email part of a payload: provider template id, subject and variables."""

    model_config = ConfigDict(frozen=True)

    template_id: int
    subject: str
    variables: Dict[str, Any] = Field(default_factory=dict)


class NotificationPayload(BaseModel):
    """Message content for one audience of one dispatch.

    Attributes:
        entity_type: Entity type of the triggering event
        entity_id: Identifier of the entity
        action: Action of the triggering event
        title: Interpolated title
        message: Interpolated content
        fields: Canonical entity snapshot produced by the entity serializer
        custom_fields: Fields selected by the rule for the stored record
        extra: Caller-provided values merged into interpolation
        actor_id: User that performed the action (if known)
        timestamp: Build time
        action_url: Link to the entity (or its index for ``deleted``)
        action_text: Label of the action link
        email: Resolved email template and variables (None without email)
    """

    model_config = ConfigDict(frozen=True)

    entity_type: str
    entity_id: Optional[Union[int, str]] = None
    action: str
    title: str
    message: str
    fields: Dict[str, Any] = Field(default_factory=dict)
    custom_fields: Dict[str, Any] = Field(default_factory=dict)
    extra: Dict[str, Any] = Field(default_factory=dict)
    actor_id: Optional[int] = None
    timestamp: datetime = Field(default_factory=utcnow)
    action_url: str = ""
    action_text: str = ""
    email: Optional[EmailContent] = None

    def broadcast_body(self) -> Dict[str, Any]:
        """Event body published on a recipient's private channel."""
        return {
            "title": self.title,
            "content": self.message,
            "type": self.entity_type,
            "action": self.action,
            "model_id": self.entity_id,
            "action_url": self.action_url,
            "action_text": self.action_text,
            "data": self.custom_fields,
            "sent_at": self.timestamp.isoformat(),
        }


class DeliveryStatus(str, Enum):
    """Delivery attempt state. SENT and FAILED are terminal."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class DeliveryAttempt(BaseModel):
    """One delivery of one payload to one recipient on one channel.

    Transitions are ``pending -> sent`` or ``pending -> failed``; any other
    transition raises InvalidTransitionError.
    """

    channel: Channel
    recipient: Recipient
    payload: NotificationPayload
    status: DeliveryStatus = DeliveryStatus.PENDING
    external_id: Optional[str] = None
    status_code: Optional[int] = None
    error_code: Optional[str] = None
    error_detail: Optional[Any] = None
    attempted_at: datetime = Field(default_factory=utcnow)

    @property
    def is_success(self) -> bool:
        return self.status == DeliveryStatus.SENT

    @property
    def is_terminal(self) -> bool:
        return self.status != DeliveryStatus.PENDING

    def _transition(self, target: DeliveryStatus) -> None:
        if self.status != DeliveryStatus.PENDING:
            raise InvalidTransitionError(self.status.value, target.value)
        self.status = target

    def mark_sent(
        self, external_id: Optional[str] = None, status_code: Optional[int] = None
    ) -> "DeliveryAttempt":
        self._transition(DeliveryStatus.SENT)
        self.external_id = external_id
        self.status_code = status_code
        return self

    def mark_failed(
        self,
        error_code: str,
        error_detail: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> "DeliveryAttempt":
        self._transition(DeliveryStatus.FAILED)
        self.error_code = error_code
        self.error_detail = error_detail
        self.status_code = status_code
        return self


class NotificationRecord(BaseModel):
    """In-app notification row written by the database channel."""

    id: Optional[int] = None
    sender_id: Optional[int] = None
    receiver_id: int
    entity_type: str
    entity_id: Optional[Union[int, str]] = None
    action: str
    title: str
    content: str
    data: Dict[str, Any] = Field(default_factory=dict)
    sent_at: datetime = Field(default_factory=utcnow)
    read_at: Optional[datetime] = None


class ScheduledNotification(BaseModel):
    """A notification stored for dispatch at a later date."""

    id: str
    entity_type: str
    action: str
    entity_id: Optional[Union[int, str]] = None
    entity: Any = None
    extra: Dict[str, Any] = Field(default_factory=dict)
    actor_id: Optional[int] = None
    due_at: datetime
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("due_at")
    @classmethod
    def _aware_due_at(cls, value: datetime) -> datetime:
        return as_utc(value)
