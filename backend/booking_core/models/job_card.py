"""Vehicle-service job cards with their priced line items."""

from sqlalchemy import JSON, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from ..core.enums import JobPaymentStatus, JobPriority, JobServiceType
from ..core.ulid_helper import generate_ulid
from ..database import Base


class JobCard(Base):
    __tablename__ = "job_cards"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    business_id = Column(String(26), nullable=False, index=True)
    customer_id = Column(String(26), nullable=False, index=True)
    vehicle_id = Column(String(26), nullable=False)
    odometer_reading = Column(Integer, nullable=True)
    issue_description = Column(Text, nullable=True)
    service_type = Column(String(20), nullable=False, default=JobServiceType.REPAIR.value)
    priority_level = Column(String(20), nullable=False, default=JobPriority.NORMAL.value)

    # Priced breakdown: [{"id", "sub_services": [{"id", "price", "discount_amount",
    # "discounted_price"}]}]
    services = Column(JSON, nullable=False, default=list)
    deal_applied = Column(JSON, nullable=True)
    total_payable_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=JobPaymentStatus.PENDING.value)

    additional_notes = Column(Text, nullable=True)
    technical_remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<JobCard {self.id} total={self.total_payable_amount}>"
