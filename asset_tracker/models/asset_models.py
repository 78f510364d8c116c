from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from asset_tracker.db.base import Base

ASSET_STATUSES = ("Available", "Assigned", "Maintenance", "Retired")
ASSIGNMENT_STATUSES = ("Active", "Returned")
REQUEST_STATUSES = ("Pending", "Approved", "Rejected")
REQUEST_PRIORITIES = ("Low", "Medium", "High")


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True)
    asset_tag = Column(String(50), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    brand = Column(String(255))
    model = Column(String(255))
    serial_number = Column(String(255))
    purchase_date = Column(Date)
    warranty_expiry = Column(Date)
    status = Column(String(20), nullable=False, default="Available")
    location = Column(String(255))
    assigned_to = Column(String(255))
    notes = Column(String(2000))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    assignments = relationship("Assignment", back_populates="asset")

    def __repr__(self):
        return f"<Asset {self.asset_tag}: {self.name} ({self.status})>"


class Assignment(Base):
    __tablename__ = "assignments"
    # At most one Active assignment per asset, enforced by the store itself.
    __table_args__ = (
        Index(
            "uq_assignments_active_asset",
            "asset_id",
            unique=True,
            sqlite_where=text("status = 'Active'"),
            postgresql_where=text("status = 'Active'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False, index=True)
    assigned_to = Column(String(255), nullable=False)
    assigned_to_email = Column(String(255), nullable=False)
    assigned_to_department = Column(String(100), nullable=False)
    assigned_to_employee_id = Column(String(50), nullable=False)
    assignment_date = Column(Date, nullable=False)
    location = Column(String(255), nullable=False)
    purpose = Column(String(1000), nullable=False)
    expected_return_date = Column(Date)
    terms_and_conditions = Column(Boolean, default=True)
    notes = Column(String(2000))
    assignee_signature = Column(String, nullable=False)
    assigned_by = Column(String(255))
    assigned_by_signature = Column(String, nullable=False)
    status = Column(String(20), nullable=False, default="Active")
    created_at = Column(DateTime, server_default=func.now())
    returned_at = Column(DateTime)

    asset = relationship("Asset", back_populates="assignments")

    def __repr__(self):
        return f"<Assignment {self.id}: asset={self.asset_id} ({self.status})>"


class AssetRequest(Base):
    __tablename__ = "requests"

    id = Column(Integer, primary_key=True)
    request_id = Column(String(50), unique=True, nullable=False)
    requester_name = Column(String(255), nullable=False)
    requester_email = Column(String(255), nullable=False)
    department = Column(String(100), nullable=False)
    asset_type = Column(String(100), nullable=False)
    description = Column(String(2000))
    priority = Column(String(20), nullable=False, default="Medium")
    status = Column(String(20), nullable=False, default="Pending")
    request_date = Column(DateTime, server_default=func.now())
    approved_date = Column(DateTime)
    approved_by = Column(String(255))
    notes = Column(String(2000))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(500))
    created_at = Column(DateTime, server_default=func.now())
