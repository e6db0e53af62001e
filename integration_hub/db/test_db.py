#!/usr/bin/env python3
"""
Test Database Setup

Provides test database functionality with the full schema and test data.
Uses the same API as the main database to ensure consistency.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from integration_hub.db.db_interface import DbInterface
import integration_hub.db.models  # noqa: F401  registers every table on DbInterface.metadata
from integration_hub.db.models.integration import Integration
from integration_hub.db.models.inbound_message import InboundMessage
from integration_hub.db.models.staff_user import StaffUser
from integration_hub.db.models.trigger_rule import TriggerRule
from integration_hub.channels.message_normalizer import normalize_message
from integration_hub.db.db import create_inbound_message
from integration_hub.enums import KeywordMatchType, OwnerType, TriggerType


class TestDatabase:
    """Test database with proper setup and teardown."""
    __test__ = False

    def __init__(self, url: str = "sqlite://"):
        self.url = url
        self.engine = None
        self.SessionLocal = None
        self.session = None

    def setup(self):
        """Set up test database with every table."""
        if self.url == "sqlite://":
            # One shared in-memory connection for every session
            self.engine = create_engine(
                self.url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False}
            )
        else:
            self.engine = create_engine(self.url, connect_args={"timeout": 30, "check_same_thread": False})

        DbInterface.metadata.create_all(self.engine)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)
        self.session = self.SessionLocal()

    def teardown(self):
        """Clean up test database."""
        if self.session:
            self.session.close()
        if self.engine:
            self.engine.dispose()

    def new_session(self):
        return self.SessionLocal()

    @contextmanager
    def get_session(self) -> Generator:
        """Get a database session."""
        try:
            yield self.session
        except Exception:
            self.session.rollback()
            raise
        finally:
            self.session.commit()


class TestDataFactory:
    """Factory for creating test data using the main database API."""
    __test__ = False

    @staticmethod
    def create_test_integration(session, channel: str = "telegram", owner_type: str = OwnerType.HEAD_OFFICE.value,
                                **kwargs) -> Integration:
        integration = Integration(
            id=kwargs.get('id', str(uuid.uuid4())),
            channel=channel,
            owner_type=owner_type,
            owner_id=kwargs.get('owner_id'),
            is_active=kwargs.get('is_active', True),
            assignment_strategy=kwargs.get('assignment_strategy'),
            default_assignee_id=kwargs.get('default_assignee_id'),
        )
        session.add(integration)
        session.commit()
        return integration

    @staticmethod
    def create_test_staff(session, role: str, **kwargs) -> StaffUser:
        staff = StaffUser(
            id=kwargs.get('id', str(uuid.uuid4())),
            name=kwargs.get('name', f"Test {role}"),
            role=role,
            franchisee_id=kwargs.get('franchisee_id'),
            is_active=kwargs.get('is_active', True),
        )
        if 'created_at' in kwargs:
            staff.created_at = kwargs['created_at']
        session.add(staff)
        session.commit()
        return staff

    @staticmethod
    def create_test_trigger_rule(session, integration_id: str, trigger_type: str = TriggerType.ALWAYS.value,
                                 **kwargs) -> TriggerRule:
        rule = TriggerRule(
            integration_id=integration_id,
            trigger_type=trigger_type,
            keywords=kwargs.get('keywords'),
            keywords_match_type=kwargs.get('keywords_match_type', KeywordMatchType.ANY.value),
            priority=kwargs.get('priority', 0),
            is_active=kwargs.get('is_active', True),
        )
        session.add(rule)
        session.commit()
        return rule

    @staticmethod
    def create_test_inbound_message(session, integration: Integration, payload: Optional[Dict[str, Any]] = None,
                                    channel: Optional[str] = None) -> InboundMessage:
        """Normalize a payload and store it as pending, the way the webhook does."""
        channel = channel or integration.channel
        if payload is None:
            payload = telegram_update()
        message = normalize_message(channel, payload, integration)
        message_id = create_inbound_message(session, message, integration.id)
        session.commit()
        return session.query(InboundMessage).filter_by(id=message_id).first()


_BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def epoch(offset_seconds: int = 0) -> int:
    return int((_BASE_TIME + timedelta(seconds=offset_seconds)).timestamp())


def telegram_update(text: str = "Hello", user_id: int = 555001, offset_seconds: int = 0, **sender) -> Dict[str, Any]:
    sender = {"id": user_id, "first_name": "Ivan", "last_name": "Petrov", **sender}
    return {
        "update_id": 1000 + offset_seconds,
        "message": {
            "message_id": 1 + offset_seconds,
            "from": sender,
            "chat": {"id": user_id, "type": "private"},
            "date": epoch(offset_seconds),
            "text": text,
        }
    }


def instagram_webhook(text: str = "Hello", sender_id: str = "1784000111", offset_seconds: int = 0) -> Dict[str, Any]:
    return {
        "object": "instagram",
        "entry": [{
            "id": "page-1",
            "time": epoch(offset_seconds) * 1000,
            "messaging": [{
                "sender": {"id": sender_id, "username": "anna.k"},
                "recipient": {"id": "page-1"},
                "timestamp": epoch(offset_seconds) * 1000,
                "message": {
                    "mid": "m_1",
                    "text": text,
                    "attachments": [
                        {"type": "image", "payload": {"url": "https://cdn.example.com/a.jpg"}},
                        {"type": "audio", "payload": {"url": "https://cdn.example.com/a.mp3"}},
                    ],
                },
            }],
        }],
    }


def vk_update(text: str = "Hello", from_id: int = 42, offset_seconds: int = 0) -> Dict[str, Any]:
    return {
        "type": "message_new",
        "group_id": 1,
        "object": {
            "message": {
                "from_id": from_id,
                "date": epoch(offset_seconds),
                "text": text,
                "attachments": [
                    {"type": "photo", "photo": {"sizes": [
                        {"type": "s", "url": "https://vk.example.com/s.jpg"},
                        {"type": "x", "url": "https://vk.example.com/x.jpg"},
                    ]}},
                    {"type": "doc", "doc": {"url": "https://vk.example.com/d.pdf", "title": "price.pdf"}},
                ],
            }
        }
    }


def whatsapp_webhook(text: Optional[str] = "Hello", sender: str = "79991234567", offset_seconds: int = 0,
                     media: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    message: Dict[str, Any] = {"from": sender, "id": "wamid.1", "timestamp": str(epoch(offset_seconds))}
    if text is not None:
        message["type"] = "text"
        message["text"] = {"body": text}
    if media:
        message.update(media)
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "waba-1",
            "changes": [{
                "field": "messages",
                "value": {
                    "contacts": [{"profile": {"name": "Olga"}, "wa_id": sender}],
                    "messages": [message],
                },
            }],
        }],
    }


def avito_message(text: str = "Hello", user_id: Optional[str] = "av-77", phone: Optional[str] = "8 (999) 765-43-21",
                  user_name: str = "Sergey") -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "user_name": user_name,
        "phone": phone,
        "text": text,
        "created_at": "2024-05-01T12:00:00Z",
    }


def max_message(text: str = "Hello", sender_id: str = "mx-9", timestamp: Any = "2024-05-01T12:00:00+03:00",
                files: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "sender_id": sender_id,
        "sender_name": "Maria",
        "content": text,
        "timestamp": timestamp,
        "files": files if files is not None else [
            {"url": "https://max.example.com/v.mp4", "mime_type": "video/mp4", "name": "v.mp4"},
            {"url": "https://max.example.com/f.bin", "mime_type": None, "name": "f.bin"},
        ],
    }


# Sample payloads for every channel
SAMPLE_PAYLOADS = {
    "telegram": telegram_update,
    "instagram": instagram_webhook,
    "vk": vk_update,
    "whatsapp": whatsapp_webhook,
    "avito": avito_message,
    "max": max_message,
}
