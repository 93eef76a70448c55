"""Strong Customer Authentication value objects."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ScaStatus(str, Enum):
    """Uniform SCA status, declared in allowed transition order."""

    STARTED = "STARTED"
    PSU_AUTHENTICATED = "PSU_AUTHENTICATED"
    SCA_METHOD_SELECTED = "SCA_METHOD_SELECTED"
    FINALISED = "FINALISED"
    FAILED = "FAILED"
    EXEMPTED = "EXEMPTED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @property
    def is_success(self) -> bool:
        return self in (ScaStatus.FINALISED, ScaStatus.EXEMPTED)

    def can_move_to(self, target: "ScaStatus") -> bool:
        """True if ``target`` is a legal successor of this status.

        Staying in place is allowed (banks re-report the current status),
        moving backwards is not. FAILED and EXEMPTED are reachable from
        every non-terminal status.
        """
        if self.is_terminal:
            return False
        if target in (ScaStatus.FAILED, ScaStatus.EXEMPTED):
            return True
        return _ORDER[target] >= _ORDER[self]


_TERMINAL = frozenset({ScaStatus.FINALISED, ScaStatus.FAILED, ScaStatus.EXEMPTED})
_ORDER = {
    ScaStatus.STARTED: 0,
    ScaStatus.PSU_AUTHENTICATED: 1,
    ScaStatus.SCA_METHOD_SELECTED: 2,
    ScaStatus.FINALISED: 3,
}


class ScaMethodType(str, Enum):
    """Type of SCA method."""

    DECOUPLED = "decoupled"
    PUSH_OTP = "push_otp"
    SMS_OTP = "sms_otp"
    CHIP_OTP = "chip_otp"
    PHOTO_OTP = "photo_otp"
    MANUAL = "manual"
    UNKNOWN = "unknown"


class ScaMethod(BaseModel):
    """An SCA method (TAN procedure) the bank offers the PSU."""

    id: str = Field(..., description="Method id, e.g. '946' or 'sms-otp'")
    name: str = Field(..., description="e.g. 'SecureGo plus'")
    method_type: ScaMethodType = Field(default=ScaMethodType.UNKNOWN)
    is_decoupled: bool = Field(default=False, description="True if app-based approval")
    max_tan_length: int | None = Field(default=None)

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    def __str__(self) -> str:
        type_str = " (app-based)" if self.is_decoupled else ""
        return f"{self.id}: {self.name}{type_str}"


class ScaChallenge(BaseModel):
    """Challenge artifact the bank issued for the current SCA step."""

    text: str | None = Field(default=None, description="Prompt shown to the PSU")
    image: bytes | None = Field(default=None, description="photoTAN/QR image")
    image_link: str | None = None
    data: list[str] = Field(default_factory=list, description="e.g. HHD_UC codes")
    otp_max_length: int | None = None
    otp_format: str | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    def __str__(self) -> str:
        parts = ["SCA Challenge"]
        if self.text:
            parts.append(f"Challenge: {self.text}")
        if self.image or self.image_link:
            parts.append("Image available for photo TAN")
        return "\n".join(parts)


class ScaStepResult(BaseModel):
    """What a bank answered to one SCA dialog step.

    Adapters translate their wire responses into this shape; the state
    machine decides whether the reported status is an allowed transition.
    """

    sca_status: ScaStatus
    sca_methods: list[ScaMethod] = Field(default_factory=list)
    selected_method: ScaMethod | None = None
    challenge: ScaChallenge | None = None
    psu_message: str | None = None
    bank_api_consent_data: dict | None = None

    model_config = ConfigDict(frozen=True)
