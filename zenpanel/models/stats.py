from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, func
from zenpanel.database import Base


class TrafficStats(Base):
    __tablename__ = "traffic_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    inbound_id = Column(Integer, ForeignKey("inbounds.id"), nullable=False, index=True)
    upload = Column(BigInteger, default=0, nullable=False)
    download = Column(BigInteger, default=0, nullable=False)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
