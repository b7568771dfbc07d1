from enum import Enum


class OrderStatus(str, Enum):
    AWAITING_CONFIRMATION = "Đợi xác nhận"
    PREPARING = "Chuẩn bị hàng"
    IN_TRANSIT = "Hàng đang được giao"
    RECEIVED = "Đã nhận được hàng"
    AWAITING_RATING = "Đánh giá"
    COMPLETED = "Hoàn thành"
    CANCELLED = "Đã hủy"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    ABANDONED = "Abandoned"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "Thanh toán khi nhận hàng"
    QR = "Quét mã QR"


class ProductStatus(str, Enum):
    PENDING_APPROVAL = "Pending"
    IN_STOCK = "Instock"
    OUT_OF_STOCK = "Outstock"
    HIDDEN = "Hidden"
    VIOLATION = "Violate"


class SessionState(str, Enum):
    CREATED = "Created"
    AWAITING_REDIRECT = "AwaitingRedirect"
    SUCCEEDED = "Succeeded"
    CANCELLED = "Cancelled"
    ABANDONED = "Abandoned"

    @property
    def is_open(self):
        return self in (SessionState.CREATED, SessionState.AWAITING_REDIRECT)


class ShopState(int, Enum):
    INACTIVE = 0
    ACTIVE = 1
    BANNED = 3
