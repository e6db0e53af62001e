#!/usr/bin/env python3
"""
Level 2: Database Operation Tests

Storage primitives on the in-memory test database: dedup mapping, usage
counters, staff lookup and message bookkeeping.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from sqlalchemy import inspect

from integration_hub.db import db
from integration_hub.db.models.lead_deduplication import LeadDeduplication
from integration_hub.db.test_db import avito_message, telegram_update
from integration_hub.enums import MessageStatus, StaffRole, UsageCounter


class TestSchema:

    def test_all_tables_exist(self, test_db):
        tables = inspect(test_db.engine).get_table_names()
        for table in ["integrations", "inbound_messages", "lead_deduplication", "trigger_rules",
                      "integration_stats", "staff_users", "franchise_deals", "booking_leads"]:
            assert table in tables, f"Table {table} not found in database"


class TestDeduplicationStore:

    def _save(self, session, external_user_id="u1", phone=None, lead_id="lead-1", channel="telegram"):
        created = db.save_deduplication_record(session, "int-1", channel, external_user_id, phone, lead_id, "booking")
        session.commit()
        return created

    def test_first_writer_wins(self, test_session):
        assert self._save(test_session, lead_id="lead-1") is True
        assert self._save(test_session, lead_id="lead-2") is False

        mapping = db.find_dedup_by_identity(test_session, "telegram", "u1")
        assert mapping.lead_id == "lead-1"
        assert test_session.query(LeadDeduplication).count() == 1

    def test_same_user_id_on_another_channel_is_another_identity(self, test_session):
        assert self._save(test_session, channel="telegram") is True
        assert self._save(test_session, channel="vk", lead_id="lead-2") is True

    def test_phone_is_unique_across_identities(self, test_session):
        assert self._save(test_session, external_user_id="u1", phone="+79991234567") is True
        assert self._save(test_session, external_user_id="u2", phone="+79991234567", lead_id="lead-2") is False

        assert db.find_dedup_by_phone(test_session, "+79991234567").lead_id == "lead-1"
        assert db.find_dedup_by_identity(test_session, "telegram", "u2") is None

    def test_missing_phones_do_not_collide(self, test_session):
        assert self._save(test_session, external_user_id="u1") is True
        assert self._save(test_session, external_user_id="u2", lead_id="lead-2") is True

    def test_find_by_empty_phone(self, test_session):
        assert db.find_dedup_by_phone(test_session, None) is None

    def test_senders_without_id_are_keyed_by_phone_only(self, test_session):
        assert self._save(test_session, external_user_id="", phone="+79990000001", channel="avito") is True
        assert self._save(test_session, external_user_id="", phone="+79990000002", lead_id="lead-2",
                          channel="avito") is True
        assert self._save(test_session, external_user_id="", phone="+79990000001", lead_id="lead-3",
                          channel="avito") is False

        assert db.find_dedup_by_identity(test_session, "avito", "") is None
        assert test_session.query(LeadDeduplication).filter(LeadDeduplication.external_user_id.is_(None)).count() == 2


class TestUsageCounters:

    def test_increments_accumulate_per_counter(self, test_session):
        day = date(2024, 5, 1)
        for _ in range(3):
            db.increment_usage_counter(test_session, "int-1", UsageCounter.MESSAGES_RECEIVED, on_date=day)
        db.increment_usage_counter(test_session, "int-1", UsageCounter.LEADS_CREATED, on_date=day)
        test_session.commit()

        stats = db.get_usage_counters(test_session, "int-1", on_date=day)
        assert stats.messages_received == 3
        assert stats.leads_created == 1
        assert stats.duplicates_prevented == 0

    def test_days_are_separate_rows(self, test_session):
        db.increment_usage_counter(test_session, "int-1", "duplicates_prevented", on_date=date(2024, 5, 1))
        db.increment_usage_counter(test_session, "int-1", "duplicates_prevented", on_date=date(2024, 5, 2))
        test_session.commit()

        assert db.get_usage_counters(test_session, "int-1", on_date=date(2024, 5, 1)).duplicates_prevented == 1
        assert db.get_usage_counters(test_session, "int-1", on_date=date(2024, 5, 2)).duplicates_prevented == 1

    def test_unknown_counter_is_rejected(self, test_session):
        with pytest.raises(ValueError):
            db.increment_usage_counter(test_session, "int-1", "leads_deleted")

    def test_best_effort_increment_swallows_failures(self, test_session):
        assert db.try_increment_usage_counter(test_session, "int-1", "leads_deleted") is False
        assert db.try_increment_usage_counter(test_session, "int-1", UsageCounter.LEADS_CREATED) is True


class TestStaffDirectory:

    def test_ordered_by_creation_and_filtered(self, test_session, test_data_factory):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        late = test_data_factory.create_test_staff(test_session, StaffRole.ADMIN.value, franchisee_id="f1",
                                                   created_at=base + timedelta(days=2))
        early = test_data_factory.create_test_staff(test_session, StaffRole.FRANCHISEE.value, franchisee_id="f1",
                                                    created_at=base)
        test_data_factory.create_test_staff(test_session, StaffRole.ADMIN.value, franchisee_id="f2",
                                            created_at=base - timedelta(days=1))
        test_data_factory.create_test_staff(test_session, StaffRole.ADMIN.value, franchisee_id="f1",
                                            created_at=base - timedelta(days=1), is_active=False)
        test_data_factory.create_test_staff(test_session, StaffRole.EMPLOYEE.value, franchisee_id="f1",
                                            created_at=base - timedelta(days=1))

        staff = db.get_eligible_staff(test_session, ["franchisee", "admin"], franchisee_id="f1")
        assert [s.id for s in staff] == [early.id, late.id]


class TestInboundMessages:

    def test_stored_as_pending_and_replayable(self, test_session, test_data_factory, head_office_integration):
        row = test_data_factory.create_test_inbound_message(
            test_session, head_office_integration, telegram_update(text="hello")
        )
        assert row.status == MessageStatus.PENDING.value

        message = db.inbound_message_to_canonical(row)
        assert message.message_text == "hello"
        assert message.external_user_id == "555001"
        assert message.received_at == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)

    def test_has_earlier_message(self, test_session, test_data_factory, head_office_integration):
        first = test_data_factory.create_test_inbound_message(
            test_session, head_office_integration, telegram_update(offset_seconds=0)
        )
        second = test_data_factory.create_test_inbound_message(
            test_session, head_office_integration, telegram_update(offset_seconds=60)
        )

        assert db.has_earlier_message(test_session, "telegram", "555001", db.as_utc(first.received_at)) is False
        assert db.has_earlier_message(test_session, "telegram", "555001", db.as_utc(second.received_at)) is True
        assert db.has_earlier_message(test_session, "vk", "555001", db.as_utc(second.received_at)) is False

    def test_sender_without_id_has_no_earlier_message(self, test_session, test_data_factory):
        integration = test_data_factory.create_test_integration(test_session, channel="avito")
        test_data_factory.create_test_inbound_message(test_session, integration, avito_message(user_id=None))

        later = datetime(2024, 5, 2, tzinfo=timezone.utc)
        assert db.has_earlier_message(test_session, "avito", "", later) is False

    def test_pending_messages_in_origin_order(self, test_session, test_data_factory, head_office_integration):
        later = test_data_factory.create_test_inbound_message(
            test_session, head_office_integration, telegram_update(offset_seconds=120)
        )
        earlier = test_data_factory.create_test_inbound_message(
            test_session, head_office_integration, telegram_update(offset_seconds=0)
        )
        db.mark_message_as_failed(test_session, later.id, "boom")
        test_session.commit()

        pending = db.get_pending_messages(test_session)
        assert [m.id for m in pending] == [earlier.id]

        summary = dict(db.get_processing_summary(test_session))
        assert summary == {"pending": 1, "failed": 1}

    def test_link_message_to_lead_by_identity_and_origin_time(self, test_session, test_data_factory,
                                                              head_office_integration):
        row = test_data_factory.create_test_inbound_message(test_session, head_office_integration)
        message = db.inbound_message_to_canonical(row)

        assert db.link_message_to_lead(test_session, message, "lead-9", "franchise_sale") == 1
        test_session.commit()

        row = db.get_message_by_id(test_session, row.id)
        assert row.status == MessageStatus.PROCESSED.value
        assert row.lead_id == "lead-9"
        assert row.processed_at is not None

    def test_link_by_row_id_leaves_other_senders_alone(self, test_session, test_data_factory):
        integration = test_data_factory.create_test_integration(test_session, channel="avito")
        anna = test_data_factory.create_test_inbound_message(
            test_session, integration, avito_message(user_id=None, user_name="Anna")
        )
        boris = test_data_factory.create_test_inbound_message(
            test_session, integration, avito_message(user_id=None, user_name="Boris")
        )
        message = db.inbound_message_to_canonical(anna)

        assert db.link_message_to_lead(test_session, message, "lead-9", "franchise_sale") == 0
        assert db.link_message_to_lead(test_session, message, "lead-9", "franchise_sale", message_id=anna.id) == 1
        test_session.commit()

        assert db.get_message_by_id(test_session, anna.id).lead_id == "lead-9"
        assert db.get_message_by_id(test_session, boris.id).status == MessageStatus.PENDING.value


class TestWebhookSecret:

    def test_secret_is_stored(self, test_session, head_office_integration):
        db.set_webhook_secret(test_session, head_office_integration.id, "s" * 32)
        test_session.commit()
        assert db.get_integration(test_session, head_office_integration.id).webhook_secret == "s" * 32

    def test_missing_integration(self, test_session):
        from integration_hub.errors import PersistenceError
        with pytest.raises(PersistenceError):
            db.set_webhook_secret(test_session, "nope", "x")
