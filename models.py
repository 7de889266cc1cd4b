from typing import List, Optional
from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Integer, Numeric, Text, JSON, Date, text
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from decimal import Decimal
import datetime


ORDER_STATUSES = ('confirmed', 'packed', 'out_for_delivery', 'delivered', 'cancelled')


class Base(DeclarativeBase):
    pass

class Users(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pin_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    loyalty_points: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, server_default=text('0'))
    total_purchases: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default=text('0'))
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text('false'))
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )

    orders: Mapped[List['Orders']] = relationship('Orders', back_populates='user')
    addresses: Mapped[List['Addresses']] = relationship(
        'Addresses', back_populates='user', cascade='all, delete-orphan'
    )

class Addresses(Base):
    __tablename__ = 'addresses'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    pin_code: Mapped[str] = mapped_column(Text, nullable=False)
    landmark: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    optional_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text('false'))

    user: Mapped['Users'] = relationship('Users', back_populates='addresses')

class Categories(Base):
    __tablename__ = 'categories'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    image: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    order: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text('TRUE'))

    products: Mapped[List['Products']] = relationship('Products', back_populates='category')

class Products(Base):
    __tablename__ = 'products'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey('categories.id', ondelete='CASCADE'), nullable=False)
    image: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    nutritional_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recipe_idea: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # [{"weight": "500g", "price": 70, "originalPrice": 85}, ...]
    variants: Mapped[list] = mapped_column(JSON, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text('TRUE'))
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )

    category: Mapped['Categories'] = relationship('Categories', back_populates='products')

class Banners(Base):
    __tablename__ = 'banners'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text('TRUE'))

class Orders(Base):
    __tablename__ = 'orders'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)

    # Snapshot values
    items: Mapped[list] = mapped_column(JSON, nullable=False)
    address: Mapped[dict] = mapped_column(JSON, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, server_default=text('0'))
    loyalty_used: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, server_default=text('0'))
    loyalty_earned: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, server_default=text('0'))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    delivery_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    time_slot: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'confirmed'"))
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )

    user: Mapped['Users'] = relationship('Users', back_populates='orders')
