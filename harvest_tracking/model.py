"""Models for the database using SQLAlchemy ORM."""
from __future__ import annotations

import enum
import logging
import os
import time

logger = logging.getLogger(__name__)

from sqlalchemy import (
    Column,
    Index,
    ForeignKey,
    CheckConstraint,
    JSON,
    Enum,
    DateTime,
    String,
    func,
    select
    )

from sqlalchemy.orm import (
    relationship,
    DeclarativeBase,
    Mapped,
    mapped_column
    )

from sqlalchemy.dialects.postgresql import JSONB

from sqlalchemy.ext.mutable import MutableDict


def new_object_id():
    """
    24 hexadecimal characters: 4 bytes of creation timestamp followed by 8 random bytes,
    the same external shape as a document store object id.
    """
    return int(time.time()).to_bytes(4, "big").hex() + os.urandom(8).hex()


class StatusEnum(enum.Enum):
    """
    status enum
    """
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class UnitEnum(enum.Enum):
    """
    harvest unit enum
    """
    PIECE = "piece"
    KG = "kg"
    G = "g"
    LB = "lb"
    OZ = "oz"
    BUNCH = "bunch"


class Base(DeclarativeBase):
    """
    Base declarative table
    """
    # this is needed for the enum to work properly right now
    # see https://github.com/sqlalchemy/sqlalchemy/discussions/8856
    type_annotation_map = {
        StatusEnum: Enum(StatusEnum),
        UnitEnum: Enum(UnitEnum)
    }


class BaseTable(Base):
    """
    Define fields common of all tables in database
    BaseTable:
        id text(24) [PK]
        status enum
        creation timestamp
        modification timestamp
        extra_metadata json
    """
    __abstract__ = True

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    status: Mapped[StatusEnum] = mapped_column(default=StatusEnum.ACTIVE)
    creation: Mapped[DateTime] = Column(DateTime(timezone=True), server_default=func.now())
    modification: Mapped[DateTime] = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    extra_metadata: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON().with_variant(JSONB, 'postgresql')), default=dict, nullable=True)

    def __repr__(self):
        """
        returns:
         {tablename: {mapped_columns}} only and not the relationships Attributes
        """
        dico = {}
        dico[self.__tablename__] = {c.key: getattr(self, c.key) for c in self.__table__.columns}
        return dico.__repr__()


class Category(BaseTable):
    """
    Category:
        id text(24) [PK]
        name text (unique, case insensitive)
        description text
        order integer
        status enum
        creation timestamp
        modification timestamp
        extra_metadata json
    """
    __tablename__ = "category"
    __table_args__ = (
        Index("ix_category_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(100), default=None, nullable=False)
    description: Mapped[str] = mapped_column(String(500), default=None, nullable=True)
    order: Mapped[int] = mapped_column(default=0)

    descriptions: Mapped[list[Description]] = relationship(back_populates="category")

    @classmethod
    def from_name(cls, name, session, description=None, order=None, status=StatusEnum.ACTIVE, extra_metadata=None):
        """
        get category if it exist, set it if it does not exist
        returns (category, created)
        """
        # Name is unique whatever the case
        category = session.execute(
            select(cls).where(func.lower(cls.name) == name.lower())
        ).scalars().first()

        if category:
            return category, False

        category = cls(
            name=name,
            description=description,
            order=order or 0,
            status=status,
            extra_metadata=extra_metadata or {}
        )
        session.add(category)
        session.flush()
        return category, True


class Description(BaseTable):
    """
    Description:
        id text(24) [PK]
        description text (unique per category, case insensitive)
        category_id text(24) [ref: > category.id]
        parent_id text(24) [ref: > description.id]
        created_by text
        status enum
        creation timestamp
        modification timestamp
        extra_metadata json
    """
    __tablename__ = "description"
    __table_args__ = (
        Index("ix_description_category_id_status", "category_id", "status"),
        Index("ix_description_parent_id_status", "parent_id", "status"),
    )

    description: Mapped[str] = mapped_column(String(1000), default=None, nullable=False)
    category_id: Mapped[str] = mapped_column(ForeignKey("category.id"), nullable=False)
    parent_id: Mapped[str] = mapped_column(ForeignKey("description.id"), default=None, nullable=True)
    created_by: Mapped[str] = mapped_column(default=None, nullable=False)

    category: Mapped[Category] = relationship(back_populates="descriptions")
    parent: Mapped[Description] = relationship(back_populates="children", remote_side="Description.id")
    children: Mapped[list[Description]] = relationship(back_populates="parent")
    harvests: Mapped[list[Harvest]] = relationship(back_populates="description")

    @classmethod
    def from_text(cls, text, category, created_by, session, parent=None, status=StatusEnum.ACTIVE, extra_metadata=None):
        """
        get description of category if it exist, set it if it does not exist
        returns (description, created)
        """
        description = session.execute(
            select(cls).where(
                cls.category_id == category.id,
                func.lower(cls.description) == text.lower()
            )
        ).scalars().first()

        if description:
            return description, False

        description = cls(
            description=text,
            category=category,
            parent=parent,
            created_by=created_by,
            status=status,
            extra_metadata=extra_metadata or {}
        )
        session.add(description)
        session.flush()
        return description, True


class Harvest(BaseTable):
    """
    Harvest:
        id text(24) [PK]
        description_id text(24) [ref: > description.id]
        amount float (>= 0)
        unit enum
        harvest_date timestamp
        status enum
        creation timestamp
        modification timestamp
        extra_metadata json
    """
    __tablename__ = "harvest"
    __table_args__ = (
        Index("ix_harvest_harvest_date", "harvest_date"),
        Index("ix_harvest_status", "status"),
        Index("ix_harvest_description_id", "description_id"),
        CheckConstraint("amount >= 0", name="ck_harvest_amount_positive"),
    )

    description_id: Mapped[str] = mapped_column(ForeignKey("description.id"), nullable=False)
    amount: Mapped[float] = mapped_column(nullable=False)
    unit: Mapped[UnitEnum] = mapped_column(nullable=False)
    harvest_date: Mapped[DateTime] = Column(DateTime(timezone=True), nullable=False)

    description: Mapped[Description] = relationship(back_populates="harvests")


# Case insensitive uniqueness
Index("uq_category_name_lower", func.lower(Category.name), unique=True)
Index("uq_description_category_id_description_lower", Description.category_id, func.lower(Description.description), unique=True)
