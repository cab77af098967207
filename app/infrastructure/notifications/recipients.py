"""Recipient resolution.

Expands a rule's selector clauses into the concrete users to notify for one
triggering entity. The user directory and the relation functions are
injected; the resolver only merges their answers.

Usage:
    resolver = RecipientResolver(directory, relations)
    recipients = resolver.resolve(rule, contract, actor_id=current_user_id)
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    DEFAULT_AUDIENCE,
    NotificationRule,
    Recipient,
    RecipientSelector,
    SelectorKind,
    UserRecord,
)

logger = get_module_logger()


class UserDirectory(ABC):
    """Read access to users, their roles and their permissions."""

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserRecord]:
        pass

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    def users_with_roles(self, roles: Iterable[str]) -> List[UserRecord]:
        pass

    @abstractmethod
    def users_with_permissions(self, permissions: Iterable[str]) -> List[UserRecord]:
        pass


class InMemoryUserDirectory(UserDirectory):
    """Dict-backed directory for tests and local runs."""

    def __init__(self, users: Optional[Iterable[UserRecord]] = None):
        self._users: Dict[int, UserRecord] = {}
        for user in users or ():
            self.add(user)

    def add(self, user: UserRecord) -> UserRecord:
        self._users[user.id] = user
        return user

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = email.lower()
        for user in self._users.values():
            if user.email and user.email.lower() == email:
                return user
        return None

    def users_with_roles(self, roles: Iterable[str]) -> List[UserRecord]:
        wanted = set(roles)
        return [u for u in self._users.values() if wanted.intersection(u.roles)]

    def users_with_permissions(self, permissions: Iterable[str]) -> List[UserRecord]:
        wanted = set(permissions)
        return [u for u in self._users.values() if wanted.intersection(u.permissions)]


RelationFn = Callable[[Any, UserDirectory], Iterable[Optional[UserRecord]]]


class RelationRegistry:
    """Named relation functions ``(entity, directory) -> users``.

    Each relation carries the audience label given to the users it returns;
    the label defaults to the relation name.

    Example:
        relations = RelationRegistry()

        @relations.register("manager")
        def employee_manager(entity, directory):
            return [directory.get_user(entity.employee.manager_user_id)]
    """

    def __init__(self):
        self._relations: Dict[str, Tuple[RelationFn, str]] = {}

    def register(
        self, name: str, fn: Optional[RelationFn] = None, audience: Optional[str] = None
    ):
        def decorator(func: RelationFn) -> RelationFn:
            self._relations[name] = (func, audience or name)
            return func

        if fn is not None:
            return decorator(fn)
        return decorator

    def get(self, name: str) -> Optional[Tuple[RelationFn, str]]:
        return self._relations.get(name)

    def names(self) -> List[str]:
        return list(self._relations)

    def __contains__(self, name: str) -> bool:
        return name in self._relations


class RecipientResolver:
    """Resolves a rule's recipients for a triggering entity.

    Guarantees:
    - No two recipients share a ``user_id``; the first clause that matches a
      user decides its position and audience label.
    - With ``exclude_actor`` the acting user is removed once, after every
      clause has been merged.
    - A relation that finds nothing, or fails with LookupError or
      AttributeError, contributes no recipients.
    """

    def __init__(self, directory: UserDirectory, relations: Optional[RelationRegistry] = None):
        self.directory = directory
        self.relations = relations or RelationRegistry()

    def resolve(
        self, rule: NotificationRule, entity: Any, actor_id: Optional[int] = None
    ) -> List[Recipient]:
        recipients: Dict[int, Recipient] = {}

        for selector in rule.selectors:
            for user, audience in self._select(selector, entity, actor_id):
                if user.id not in recipients:
                    recipients[user.id] = Recipient.from_user(user, audience)

        if rule.exclude_actor and actor_id is not None:
            recipients.pop(actor_id, None)

        logger.debug(
            "recipients_resolved",
            rule=rule.key,
            recipient_count=len(recipients),
            exclude_actor=rule.exclude_actor,
        )
        return list(recipients.values())

    def _select(
        self, selector: RecipientSelector, entity: Any, actor_id: Optional[int]
    ) -> List[Tuple[UserRecord, str]]:
        kind = selector.kind

        if kind == SelectorKind.ROLE:
            users = self.directory.users_with_roles([str(v) for v in selector.values])
            return [(u, DEFAULT_AUDIENCE) for u in users]

        if kind == SelectorKind.PERMISSION:
            users = self.directory.users_with_permissions([str(v) for v in selector.values])
            return [(u, DEFAULT_AUDIENCE) for u in users]

        if kind == SelectorKind.USER_ID:
            found = (self.directory.get_user(int(v)) for v in selector.values)
            return [(u, DEFAULT_AUDIENCE) for u in found if u is not None]

        if kind == SelectorKind.USER_EMAIL:
            found = (self.directory.get_user_by_email(str(v)) for v in selector.values)
            return [(u, DEFAULT_AUDIENCE) for u in found if u is not None]

        if kind == SelectorKind.ACTOR:
            if actor_id is None:
                return []
            actor = self.directory.get_user(actor_id)
            return [(actor, "actor")] if actor is not None else []

        if kind == SelectorKind.RELATION:
            selected: List[Tuple[UserRecord, str]] = []
            for name in selector.values:
                selected.extend(self._relation(str(name), entity))
            return selected

        return []

    def _relation(self, name: str, entity: Any) -> List[Tuple[UserRecord, str]]:
        registered = self.relations.get(name)
        if registered is None:
            logger.warning("unknown_recipient_relation", relation=name)
            return []

        fn, audience = registered
        try:
            users = fn(entity, self.directory) or []
            return [(u, audience) for u in users if u is not None]
        except (LookupError, AttributeError) as e:
            logger.info("recipient_relation_empty", relation=name, reason=str(e))
            return []
