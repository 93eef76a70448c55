"""Bank account value object."""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from multibank.domain.banking.value_objects.bank_api import BankApi
from multibank.domain.shared.iban import has_iban_prefix, normalize_iban


class BankAccount(BaseModel):
    """
    Value object representing a bank account.

    The same logical account has a different resource id at every bank API
    (FinTS account number, XS2A resource id, aggregator account id), so the
    ids are kept per protocol in ``external_ids``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    iban: str = Field(
        ...,
        min_length=15,
        max_length=34,
        description="International Bank Account Number",
    )
    currency: str = Field(default="EUR", max_length=3)
    owner: str | None = Field(default=None, description="Owning user id")
    name: str | None = Field(default=None, max_length=255)
    owner_name: str | None = Field(default=None, max_length=255)
    product: str | None = Field(default=None, max_length=255)
    bic: str | None = Field(default=None, max_length=11)
    external_ids: dict[BankApi, str] = Field(default_factory=dict)

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    @field_validator("iban")
    @classmethod
    def validate_iban(cls, v: str) -> str:
        v = normalize_iban(v) or ""
        if not has_iban_prefix(v):
            msg = "IBAN must start with 2 letters followed by 2 digits"
            raise ValueError(msg)
        return v

    def external_id(self, bank_api: BankApi) -> str | None:
        return self.external_ids.get(bank_api)

    def with_external_id(self, bank_api: BankApi, resource_id: str) -> "BankAccount":
        """Return a copy that also knows the resource id for ``bank_api``."""
        external_ids = dict(self.external_ids)
        external_ids[bank_api] = resource_id
        return self.model_copy(update={"external_ids": external_ids})

    def __str__(self) -> str:
        return f"{self.name or 'Account'} - {self.iban}"
