"""
Models and services used across the test suite.
"""

from typing import Literal, Optional

from pydantic import conint, constr
from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import declarative_base

from builder_services import BuilderService, between, equals, operator, order_by
from builder_services.models import SoftDeleteMixin, TimestampMixin
from builder_services.soft_delete import filter_deleted

Base = declarative_base()


class NotificationTemplate(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "notification_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    template_name = Column(String(100), nullable=False, unique=True)
    template_type = Column(String(50), nullable=False)  # email, sms, push, in_app
    subject = Column(String(255))
    content = Column(Text, nullable=False)
    priority = Column(String(20), default="normal")
    max_retries = Column(Integer, default=3)


class UserChannel(Base):
    """Channel per user and type, keyed by (user_id, channel_type)"""

    __tablename__ = "user_channels"

    user_id = Column(Integer, primary_key=True)
    channel_type = Column(String(50), primary_key=True)
    channel_value = Column(String(255), nullable=False)
    is_verified = Column(Integer, default=0)


class TemplateService(BuilderService):
    def default_query(self):
        return filter_deleted(self.db.query(NotificationTemplate), NotificationTemplate)

    def available_filters(self):
        return {
            "type": equals(NotificationTemplate.template_type),
            "priority": equals(NotificationTemplate.priority),
            "name_like": operator(NotificationTemplate.template_name, "like"),
            "retries": between(NotificationTemplate.max_retries),
        }

    def available_sort(self):
        return {
            "name": order_by(NotificationTemplate.template_name),
            "retries": order_by(NotificationTemplate.max_retries),
        }

    def validation_rules_for_create(self):
        return {
            "template_name": constr(min_length=1, max_length=100),
            "template_type": Literal["email", "sms", "push", "in_app"],
            "content": constr(min_length=1),
            "subject": (Optional[str], None),
            "priority": (Literal["low", "normal", "high", "urgent"], "normal"),
            "max_retries": (conint(ge=0, le=10), 3),
        }


class LenientTemplateService(TemplateService):
    unknown_keys = "ignore"


class ChannelService(BuilderService):
    def default_query(self):
        return self.db.query(UserChannel)

    def available_filters(self):
        return {
            "user": equals(UserChannel.user_id),
            "verified": equals(UserChannel.is_verified),
        }

    def validation_rules_for_create(self):
        return {
            "user_id": int,
            "channel_type": str,
            "channel_value": str,
        }


def template_data(name: str, template_type: str = "email", **extra) -> dict:
    data = {"template_name": name, "template_type": template_type, "content": f"Content for {name}"}
    data.update(extra)
    return data
