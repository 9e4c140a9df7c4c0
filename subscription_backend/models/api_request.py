"""API request models."""

from pydantic import AliasChoices, BaseModel, Field


class VerifyPaymentRequest(BaseModel):
    """Checkout result posted by the client after a successful payment.

    Accepts both the short keys and the ``razorpay_*`` keys the checkout
    handler hands to the client.
    """

    payment_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("paymentId", "razorpay_payment_id", "payment_id"),
    )
    subscription_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices(
            "subscriptionId", "razorpay_subscription_id", "subscription_id"
        ),
    )
    signature: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )

    class Config:
        json_schema_extra = {
            "example": {
                "paymentId": "pay_00000000000001",
                "subscriptionId": "sub_00000000000001",
                "signature": "5f2c...e91a",
            }
        }
