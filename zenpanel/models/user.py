import uuid

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, Table, func
from sqlalchemy.orm import relationship

from zenpanel.database import Base

user_inbounds = Table(
    "user_inbounds",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("inbound_id", Integer, ForeignKey("inbounds.id", ondelete="CASCADE"), primary_key=True),
)


def generate_uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    uuid = Column(String(36), unique=True, nullable=False, index=True, default=generate_uuid)
    enabled = Column(Boolean, default=True, nullable=False)
    data_limit = Column(BigInteger, default=0, nullable=False)  # bytes, 0 = unlimited
    data_used = Column(BigInteger, default=0, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    inbounds = relationship("Inbound", secondary=user_inbounds, back_populates="users", order_by="Inbound.id")
