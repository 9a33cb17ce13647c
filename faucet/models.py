import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from faucet.database import Base


class DripRecord(Base):
    """
    One faucet request that reached the chain, and how it ended.

    Rows are written after the outcome is known. Rate-limited and
    faucet-empty outcomes are recorded too; they carry no tx hash.
    """
    __tablename__ = "drips"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    route = Column(String, nullable=False)
    recipient = Column(String, nullable=False, index=True)
    client_ip = Column(String, nullable=True)
    outcome = Column(String, nullable=False)
    tx_hash = Column(String, nullable=True)
    message = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
