import uuid
from typing import Optional

from sqlalchemy import UUID, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Booth(Base):
    __tablename__ = "booths"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Member who earns the member share of this booth's sales
    assigned_to: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    price: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
