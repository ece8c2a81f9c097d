"""Tenant (account) table."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from jobdock.db.base import Base, TimestampMixin


class TenantRow(Base, TimestampMixin):
    __tablename__ = "tenants"

    tenant_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    subscription_tier: Mapped[str] = mapped_column(String(20), nullable=False, default="single")
