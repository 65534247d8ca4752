import enum
from sqlalchemy import (
    Column, Integer, BigInteger, String, DateTime, Boolean, ForeignKey,
    Enum, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from orderdesk.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

# -----------------------
# Enums
# -----------------------
class PricingRule(str, enum.Enum):
    SUM = "SUM"
    MAX_OPTION = "MAX_OPTION"
    HALF_SUM = "HALF_SUM"

class GroupRole(str, enum.Enum):
    FLAVOR = "FLAVOR"
    ADDON = "ADDON"

class OrderStatus(str, enum.Enum):
    NEW = "NEW"
    PRINTING = "PRINTING"
    PRINTED = "PRINTED"

class FulfillmentType(str, enum.Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"
    DINE_IN = "DINE_IN"

class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    PIX = "PIX"

class PrintJobType(str, enum.Enum):
    KITCHEN_ORDER = "KITCHEN_ORDER"
    CASHIER_TABLE_SUMMARY = "CASHIER_TABLE_SUMMARY"

class PrintJobStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    PRINTED = "PRINTED"
    FAILED = "FAILED"

# -----------------------
# Store
# -----------------------
class Store(Base):
    __tablename__ = "store"

    store_id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(64), nullable=False, unique=True)
    name = Column(String(128), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)

    bot_config = relationship("StoreBotConfig", back_populates="store", uselist=False)
    payment_settings = relationship("StorePaymentSettings", back_populates="store", uselist=False)
    products = relationship("Product", back_populates="store")
    orders = relationship("Order", back_populates="store")

class StoreBotConfig(Base):
    __tablename__ = "store_bot_config"

    bot_config_id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("store.store_id"), nullable=False, unique=True)
    enabled = Column(Boolean, nullable=False, default=False)
    send_order_confirmation = Column(Boolean, nullable=False, default=True)
    send_receipt_link = Column(Boolean, nullable=False, default=True)
    pix_message_enabled = Column(Boolean, nullable=False, default=True)
    # null -> default templates in services.templates
    order_template = Column(Text)
    pix_template = Column(Text)

    store = relationship("Store", back_populates="bot_config")

class StorePaymentSettings(Base):
    __tablename__ = "store_payment_settings"

    payment_settings_id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("store.store_id"), nullable=False, unique=True)
    pix_key = Column(String(128))
    pix_name = Column(String(128))
    pix_bank = Column(String(128))

    store = relationship("Store", back_populates="payment_settings")

# -----------------------
# Catalog
# -----------------------
class Product(Base):
    __tablename__ = "product"

    product_id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("store.store_id"), nullable=False)
    name = Column(String(128), nullable=False)
    pricing_rule = Column(Enum(PricingRule), nullable=False, default=PricingRule.SUM)
    base_price_cents = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)

    store = relationship("Store", back_populates="products")
    option_groups = relationship(
        "OptionGroup",
        back_populates="product",
        order_by="OptionGroup.sort_order",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_product_store_active", "store_id", "is_active"),
    )

class OptionGroup(Base):
    __tablename__ = "option_group"

    group_id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("product.product_id"), nullable=False)
    name = Column(String(64), nullable=False)
    role = Column(Enum(GroupRole), nullable=False, default=GroupRole.ADDON)
    sort_order = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="option_groups")
    items = relationship(
        "OptionItem",
        back_populates="group",
        order_by="OptionItem.sort_order",
        cascade="all, delete-orphan",
    )

class OptionItem(Base):
    __tablename__ = "option_item"

    option_item_id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("option_group.group_id"), nullable=False)
    name = Column(String(64), nullable=False)
    price_delta_cents = Column(Integer, nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)

    group = relationship("OptionGroup", back_populates="items")

# -----------------------
# Orders
# -----------------------
class Order(Base):
    __tablename__ = "orders"

    order_id = Column(BigIntPK, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("store.store_id"), nullable=False)
    status = Column(Enum(OrderStatus), nullable=False)

    customer_name = Column(String(128), nullable=False)
    customer_phone = Column(String(32))
    fulfillment_type = Column(Enum(FulfillmentType), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    change_for_cents = Column(Integer)
    notes = Column(String(512))
    total_cents = Column(Integer, nullable=False)

    # salon/table orders
    table_ref = Column(String(64))
    table_session_ref = Column(String(64))

    # public ordering retry key
    client_order_id = Column(String(64))
    receipt_token = Column(String(64), nullable=False, unique=True)

    created_at = Column(DateTime, nullable=False)
    printing_claimed_at = Column(DateTime)
    customer_notified_at = Column(DateTime)
    notify_lease_at = Column(DateTime)
    notify_lease_id = Column(String(32))

    store = relationship("Store", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.order_item_id")

    __table_args__ = (
        UniqueConstraint("store_id", "client_order_id", name="uq_order_store_client_order"),
        Index("ix_order_store_status_created", "store_id", "status", "created_at"),
        Index("ix_order_status_created", "status", "created_at"),
    )

class OrderItem(Base):
    __tablename__ = "order_item"

    order_item_id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey("orders.order_id"), nullable=False)
    product_id = Column(Integer, ForeignKey("product.product_id"), nullable=False)
    product_name = Column(String(128), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(Integer, nullable=False)
    notes = Column(String(256))

    order = relationship("Order", back_populates="items")
    options = relationship("OrderItemOption", back_populates="order_item", order_by="OrderItemOption.option_id")

    __table_args__ = (
        Index("ix_order_item_order", "order_id"),
    )

class OrderItemOption(Base):
    __tablename__ = "order_item_option"

    option_id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_item_id = Column(BigInteger, ForeignKey("order_item.order_item_id"), nullable=False)
    group_name = Column(String(64), nullable=False)
    item_name = Column(String(64), nullable=False)
    price_delta_cents = Column(Integer, nullable=False)

    order_item = relationship("OrderItem", back_populates="options")

    __table_args__ = (
        Index("ix_order_item_option_item", "order_item_id"),
    )

# -----------------------
# Print jobs
# -----------------------
class PrintJob(Base):
    __tablename__ = "print_job"

    print_job_id = Column(BigIntPK, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("store.store_id"), nullable=False)
    job_type = Column(Enum(PrintJobType), nullable=False)
    status = Column(Enum(PrintJobStatus), nullable=False)

    # KITCHEN_ORDER
    order_id = Column(BigInteger)  # no FK: purged orders leave their tickets behind
    # CASHIER_TABLE_SUMMARY
    table_ref = Column(String(64))
    table_session_ref = Column(String(64))

    error = Column(String(512))
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_print_job_store_status_created", "store_id", "status", "created_at"),
        Index("ix_print_job_table", "table_ref", "table_session_ref"),
    )
