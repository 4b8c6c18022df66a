import enum


class Role(str, enum.Enum):
    admin = "admin"
    user = "user"


class OrderType(str, enum.Enum):
    general = "general"
    brand = "brand"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    partial = "partial"
    completed = "completed"
    cancelled = "cancelled"


class OrderItemStatus(str, enum.Enum):
    pending = "pending"
    partial = "partial"
    completed = "completed"


class StockStatus(str, enum.Enum):
    normal = "normal"
    low = "low"
    out_of_stock = "out_of_stock"
