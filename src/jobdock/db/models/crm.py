"""CRM tables read by the scheduling engine (contacts, services, quotes, invoices)."""

from sqlalchemy import Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from jobdock.db.base import Base, TimestampMixin


class ContactRow(Base, TimestampMixin):
    __tablename__ = "contacts"

    contact_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)

    @property
    def display_name(self) -> str | None:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None


class ServiceRow(Base, TimestampMixin):
    __tablename__ = "services"

    service_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)


class QuoteRow(Base, TimestampMixin):
    __tablename__ = "quotes"

    quote_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    quote_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    total: Mapped[float | None] = mapped_column(Float, nullable=True)


class InvoiceRow(Base, TimestampMixin):
    __tablename__ = "invoices"

    invoice_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    total: Mapped[float | None] = mapped_column(Float, nullable=True)
