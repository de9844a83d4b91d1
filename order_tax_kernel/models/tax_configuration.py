"""
Tax Configuration ORM Persistence Model.

Responsibility:
    SQLAlchemy model persisting the frozen ``TaxConfiguration`` DTO, with
    ``to_dto()`` / ``from_dto()`` conversion.

Invariants enforced:
    - ``tax_rate`` uses Decimal (Numeric) -- NEVER float.
    - Enum fields stored as String(20) containing the enum .value string.
    - Rows are scoped by ``organization_id``; every query filters on it.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from order_tax_kernel.db.base import TrackedBase, ensure_utc
from order_tax_kernel.domain.values import ServiceType, TaxConfiguration, TaxType


class TaxConfigurationModel(TrackedBase):
    """
    ORM model for ``TaxConfiguration``.

    Guarantees:
        - ``service_type`` / ``tax_type`` store the enum .value strings.
        - The "one active default per (organization, service type)" rule is
          enforced by the service before writes, not by a constraint, so
          corrupted data can still be read and resolved deterministically.
    """

    __tablename__ = "tax_configurations"

    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    organization_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tax_type: Mapped[str] = mapped_column(String(20), nullable=False, default="GST")
    tax_rate: Mapped[Decimal] = mapped_column(nullable=False)
    service_type: Mapped[str] = mapped_column(String(20), nullable=False, default="ALL")
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_tax_exempt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_price_inclusive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    applicable_region: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_tax_configuration_org", "organization_id"),
        Index(
            "idx_tax_configuration_org_service",
            "organization_id", "service_type", "is_active",
        ),
    )

    def to_dto(self) -> TaxConfiguration:
        return TaxConfiguration(
            id=self.id,
            organization_id=self.organization_id,
            name=self.name,
            description=self.description,
            organization_type=self.organization_type,
            tax_type=TaxType(self.tax_type),
            tax_rate=Decimal(self.tax_rate),
            service_type=ServiceType(self.service_type),
            is_default=self.is_default,
            is_active=self.is_active,
            is_tax_exempt=self.is_tax_exempt,
            is_price_inclusive=self.is_price_inclusive,
            applicable_region=self.applicable_region,
            created_at=ensure_utc(self.created_at),
            updated_at=ensure_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto: TaxConfiguration) -> "TaxConfigurationModel":
        model = cls(id=dto.id)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: TaxConfiguration) -> None:
        """Copy every mutable field of ``dto`` onto this row."""
        self.organization_id = dto.organization_id
        self.name = dto.name
        self.description = dto.description
        self.organization_type = dto.organization_type
        self.tax_type = dto.tax_type.value
        self.tax_rate = dto.tax_rate
        self.service_type = dto.service_type.value
        self.is_default = dto.is_default
        self.is_active = dto.is_active
        self.is_tax_exempt = dto.is_tax_exempt
        self.is_price_inclusive = dto.is_price_inclusive
        self.applicable_region = dto.applicable_region
        self.created_at = dto.created_at
        self.updated_at = dto.updated_at

    def __repr__(self) -> str:
        return (
            f"<TaxConfigurationModel {self.id}: {self.name} "
            f"({self.service_type}, {self.tax_rate}%)>"
        )
