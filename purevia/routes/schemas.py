from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

NonEmptyStr = Annotated[str, Field(min_length=1)]


class RequestBody(BaseModel):
    # the storefront pages send phone numbers and OTPs as numbers sometimes
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class EmailBody(RequestBody):
    email: NonEmptyStr


class SendOtpBody(EmailBody):
    name: str | None = None


class CustomerBody(EmailBody):
    name: NonEmptyStr


class PlaceOrderBody(RequestBody):
    email: NonEmptyStr
    otp: NonEmptyStr
    name: NonEmptyStr
    mobile: str = ""
    items: list[Any] | dict[str, Any]
    total_price: float = Field(..., alias="totalPrice")
    delivery: str | dict[str, Any]
    address: NonEmptyStr
    payment_method: NonEmptyStr = Field(..., alias="paymentMethod")


class VerifyDeliveryBody(CustomerBody):
    otp: NonEmptyStr


class VerifyCancelBody(EmailBody):
    otp: NonEmptyStr


class DeleteOrderBody(EmailBody):
    index: int
    order_id: str | None = Field(default=None, alias="orderId")
