from sqlalchemy import Column, Integer, String, BigInteger, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .db import Base

# Stable field identifiers accepted by partial merges
FIELD_PATH = "path"
FIELD_NAME = "name"
FIELD_SIZE = "size"
FIELD_TAGS = "tags"
FIELD_ORDER_NO = "orderNo"


class FileMeta(Base):
    __tablename__ = "file_meta"

    id = Column(String(36), primary_key=True)
    path = Column(String(1024), nullable=False, unique=True)
    name = Column(String(1024), nullable=False)
    file_size = Column("size", BigInteger, nullable=False, default=0)
    order_no = Column("order_no", String(64), nullable=False, index=True)
    create_time = Column(DateTime(timezone=True), nullable=False)
    update_time = Column(DateTime(timezone=True), nullable=False)

    tag_rows = relationship(
        "FileTag",
        order_by="FileTag.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self):
        return [t.tag for t in self.tag_rows]


class FileTag(Base):
    __tablename__ = "file_tag"

    file_id = Column(String(36), ForeignKey("file_meta.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, primary_key=True)
    tag = Column(String(255), nullable=False, index=True)
