"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountStatus(str, enum.Enum):
    """Lifecycle state of a customer account."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class RequestType(str, enum.Enum):
    """The operation a caller asks for."""
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    TRANSFER = "TRANSFER"


class EffectiveType(str, enum.Enum):
    """
    What a ledger entry records.

    A TRANSFER request produces two entries, TRANSFER_OUT and
    TRANSFER_IN; the other requests produce one entry of the
    same name.
    """
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


# The entry returned to the caller for each request type
PRIMARY_EFFECTIVE_TYPE: dict[RequestType, EffectiveType] = {
    RequestType.DEPOSIT: EffectiveType.DEPOSIT,
    RequestType.WITHDRAW: EffectiveType.WITHDRAW,
    RequestType.TRANSFER: EffectiveType.TRANSFER_OUT,
}
