from pydantic import BaseModel, Field, field_validator
from web3 import Web3


class AddressRequest(BaseModel):
    address: str = Field(..., description="Recipient EVM address")
    wait: bool = Field(True, description="Wait for the transaction to be included")

    @field_validator("wait", mode="before")
    @classmethod
    def default_wait(cls, v):
        # An explicit null means the default.
        return True if v is None else v

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        if not v.startswith("0x"):
            raise ValueError("address must start with 0x")
        if len(v) != 42:
            raise ValueError("address must be exactly 42 characters")
        # Check hex format
        try:
            int(v[2:], 16)
        except ValueError:
            raise ValueError("address must be valid hex")
        return Web3.to_checksum_address(v)

    def __str__(self):
        return f"address: {self.address}, wait: {self.wait}"


class DripRequest(AddressRequest):
    pass


class RegisterRequest(AddressRequest):
    pass


class SendRequest(AddressRequest):
    pass


class TxResponse(BaseModel):
    tx_hash: str


class ErrorMessage(BaseModel):
    code: int
    message: str
