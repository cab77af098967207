"""Unit tests for the rule store and the rules file parser.

Tests cover:
- Rule lookup (present and absent pairs)
- Recipient selector parsing
- Global channel switches
- Template bindings and the default template
- Loading and reloading the YAML rules file
"""

import pytest
import yaml

from infrastructure.notifications.exceptions import (
    NotificationConfigError,
    UnknownTemplateError,
)
from infrastructure.notifications.models import Channel, SelectorKind
from infrastructure.notifications.rules import (
    APP_ROOT,
    RuleStore,
    load_notification_config,
    parse_notification_config,
    resolve_rules_path,
)

pytestmark = pytest.mark.unit


class TestGetRule:
    """Tests for RuleStore.get_rule()."""

    def test_returns_configured_rule(self, rule_store):
        rule = rule_store.get_rule("contract", "updated")

        assert rule is not None
        assert rule.key == "contract.updated"
        assert rule.title == "Contrato Actualizado: {file_number}"

    @pytest.mark.parametrize(
        "entity_type,action",
        [("contract", "archived"), ("invoice", "created"), ("", "")],
    )
    def test_unknown_pair_returns_none(self, rule_store, entity_type, action):
        """Absent pairs are not errors."""
        assert rule_store.get_rule(entity_type, action) is None

    def test_mail_alias_is_normalized_to_email(self, rule_store):
        rule = rule_store.get_rule("contract", "updated")

        assert rule.channels == (Channel.DATABASE, Channel.BROADCAST, Channel.EMAIL)

    def test_custom_fields_and_scheduled_flag(self, rule_store):
        updated = rule_store.get_rule("contract", "updated")
        expiring = rule_store.get_rule("contract", "expiring")

        assert updated.custom_fields == ("contract_id", "action_type")
        assert updated.scheduled is False
        assert expiring.scheduled is True


class TestSelectorParsing:
    """Tests for recipient selector parsing."""

    def test_roles_and_relationships(self, rule_store):
        rule = rule_store.get_rule("contract", "updated")

        assert [(s.kind, s.values) for s in rule.selectors] == [
            (SelectorKind.ROLE, ("RRHH",)),
            (SelectorKind.RELATION, ("manager",)),
        ]

    def test_employee_flag_becomes_relation(self, rule_store):
        rule = rule_store.get_rule("contract", "expiring")

        assert rule.selectors[0].kind == SelectorKind.RELATION
        assert rule.selectors[0].values == ("employee",)

    def test_exclude_actor_is_not_a_selector(self, rule_store):
        rule = rule_store.get_rule("company", "created")

        assert rule.exclude_actor is True
        assert all(s.kind != SelectorKind.ACTOR for s in rule.selectors)

    def test_relationships_mapping_keeps_enabled_entries(self, rules_data):
        rules_data["rules"]["contract"]["updated"]["recipients"] = {
            "relationships": {"manager": True, "employee": False}
        }

        config = parse_notification_config(rules_data)
        rule = config.rules["contract"]["updated"]

        assert rule.selectors[0].values == ("manager",)

    def test_all_selector_kinds(self, rules_data):
        rules_data["rules"]["contract"]["updated"]["recipients"] = {
            "permissions": ["viewContractsPanel"],
            "user_ids": [1, 2],
            "user_emails": ["rrhh@example.com"],
            "actor": True,
        }

        rule = parse_notification_config(rules_data).rules["contract"]["updated"]

        assert [s.kind for s in rule.selectors] == [
            SelectorKind.PERMISSION,
            SelectorKind.USER_ID,
            SelectorKind.USER_EMAIL,
            SelectorKind.ACTOR,
        ]

    def test_unknown_selector_key_raises(self, rules_data):
        rules_data["rules"]["contract"]["updated"]["recipients"] = {"teams": ["ops"]}

        with pytest.raises(NotificationConfigError, match="teams"):
            parse_notification_config(rules_data)

    def test_unknown_channel_raises(self, rules_data):
        rules_data["rules"]["contract"]["updated"]["channels"] = ["sms"]

        with pytest.raises(NotificationConfigError):
            parse_notification_config(rules_data)

    def test_non_mapping_document_raises(self):
        with pytest.raises(NotificationConfigError):
            parse_notification_config(["rules"])

    def test_empty_document_gives_empty_config(self):
        config = parse_notification_config(None)

        assert config.rules == {}
        assert config.default_template_id == 46


class TestChannelSwitches:
    """Tests for RuleStore.is_channel_enabled()."""

    def test_all_channels_enabled_by_default(self, rule_store):
        assert rule_store.enabled_channels() == [
            Channel.DATABASE,
            Channel.BROADCAST,
            Channel.EMAIL,
        ]

    def test_rules_file_disables_channel(self, rules_data, rule_store_factory):
        rules_data["channels"]["mail"] = {"enabled": False}
        store = rule_store_factory(rules_data)

        assert store.is_channel_enabled("email") is False
        assert store.is_channel_enabled(Channel.DATABASE) is True

    def test_settings_flag_disables_channel(self, rule_store_factory):
        store = rule_store_factory(channel_flags={"email": False})

        assert store.is_channel_enabled(Channel.EMAIL) is False
        assert store.is_channel_enabled("mail") is False

    def test_unknown_channel_is_disabled(self, rule_store):
        assert rule_store.is_channel_enabled("pigeon") is False


class TestTemplateBindings:
    """Tests for template bindings."""

    def test_configured_key_resolves_to_its_id(self, rule_store):
        binding = rule_store.get_template_binding("company.created")

        assert binding.template_id == 53
        assert binding.variables["COMPANY_NAME"] == "company_name"

    def test_unknown_key_returns_none(self, rule_store):
        assert rule_store.get_template_binding("emails.unknown") is None

    def test_unknown_key_strict_raises(self, rule_store):
        with pytest.raises(UnknownTemplateError) as exc_info:
            rule_store.get_template_binding("emails.unknown", strict=True)

        assert exc_info.value.key == "emails.unknown"

    def test_default_binding(self, rule_store):
        binding = rule_store.default_binding()

        assert binding.template_id == 46
        assert set(binding.variables) == {"SUBJECT", "TITLE", "MESSAGE"}

    def test_template_without_mapping_uses_default_mapping(self, rule_store):
        assert rule_store.template_variables(99) == rule_store.template_variables(46)


class TestLoadingAndReload:
    """Tests for the YAML loader and RuleStore.reload()."""

    def test_load_from_file(self, tmp_path, rules_data):
        path = tmp_path / "notifications.yml"
        path.write_text(yaml.safe_dump(rules_data), encoding="utf-8")

        store = RuleStore.from_file(path)

        assert store.get_rule("contract", "updated") is not None

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(NotificationConfigError, match="Cannot read"):
            load_notification_config(tmp_path / "missing.yml")

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_text("rules: [unclosed", encoding="utf-8")

        with pytest.raises(NotificationConfigError, match="Invalid YAML"):
            load_notification_config(path)

    def test_reload_swaps_snapshot(self, tmp_path, rules_data):
        path = tmp_path / "notifications.yml"
        path.write_text(yaml.safe_dump(rules_data), encoding="utf-8")
        store = RuleStore.from_file(path)

        del rules_data["rules"]["company"]
        path.write_text(yaml.safe_dump(rules_data), encoding="utf-8")
        store.reload()

        assert store.get_rule("company", "created") is None
        assert store.get_rule("contract", "updated") is not None

    def test_failed_reload_keeps_previous_snapshot(self, tmp_path, rules_data):
        path = tmp_path / "notifications.yml"
        path.write_text(yaml.safe_dump(rules_data), encoding="utf-8")
        store = RuleStore.from_file(path)
        previous = store.config

        path.write_text("rules: [unclosed", encoding="utf-8")
        with pytest.raises(NotificationConfigError):
            store.reload()

        assert store.config is previous
        assert store.get_rule("company", "created") is not None

    def test_reload_without_source_raises(self, rule_store):
        with pytest.raises(NotificationConfigError):
            rule_store.reload()

    def test_from_file_reads_channel_flags_from_settings(self, tmp_path, rules_data):
        path = tmp_path / "notifications.yml"
        path.write_text(yaml.safe_dump(rules_data), encoding="utf-8")

        class FakeSettings:
            def channel_flags(self):
                return {"database": True, "broadcast": False, "email": True}

        store = RuleStore.from_file(path, FakeSettings())

        assert store.is_channel_enabled(Channel.BROADCAST) is False


class TestBundledRulesFile:
    """The rules file shipped with the application parses."""

    def test_relative_path_resolves_against_app_root(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert resolve_rules_path("config/notifications.yml") == (
            APP_ROOT / "config" / "notifications.yml"
        )

    def test_bundled_rules_load(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_notification_config("config/notifications.yml")

        assert config.default_template_id == 46
        assert config.templates["company.created"] == 53
        assert config.rules["contract"]["expiring"].scheduled is True
        assert Channel.EMAIL in config.rules["contract"]["updated"].channels
