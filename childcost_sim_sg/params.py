"""Household profile and input validation."""

from dataclasses import asdict, dataclass
from enum import Enum


class Residency(Enum):
    CITIZEN = "CITIZEN"
    PR = "PR"
    FOREIGNER = "FOREIGNER"


class HouseholdIncomeType(Enum):
    DUAL_INCOME = "DUAL_INCOME"
    SINGLE_INCOME = "SINGLE_INCOME"


class Gender(Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class Realism(Enum):
    OPTIMISTIC = "OPTIMISTIC"
    REALISTIC = "REALISTIC"
    CONSERVATIVE = "CONSERVATIVE"


class ProfileValidationError(ValueError):
    """Raised when a profile cannot start a session or be saved."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid profile: " + "; ".join(self.errors))


_ENUM_FIELDS = {
    "residency_father": Residency,
    "residency_mother": Residency,
    "household_income_type": HouseholdIncomeType,
    "child_gender": Gender,
    "realism": Realism,
}


@dataclass(frozen=True)
class Profile:
    """Household and child inputs for one run. Incomes are SGD per month."""

    residency_father: Residency
    residency_mother: Residency
    household_income_type: HouseholdIncomeType
    gross_income_father: float      # SGD/month
    gross_income_mother: float
    disposable_income_father: float
    disposable_income_mother: float
    family_savings: float
    child_name: str
    child_gender: Gender
    realism: Realism = Realism.REALISTIC
    child_order: int = 1             # 1 = first child
    birth_year: int = 2025           # calendar year of month 0
    profile_id: str = "default"

    @property
    def household_gross_income(self) -> float:
        return self.gross_income_father + self.gross_income_mother

    @property
    def household_disposable_income(self) -> float:
        return self.disposable_income_father + self.disposable_income_mother

    @property
    def has_citizen_or_pr(self) -> bool:
        local = (Residency.CITIZEN, Residency.PR)
        return self.residency_father in local or self.residency_mother in local

    @property
    def child_residency(self) -> str:
        """Residency key used for fee lookups: citizen if either parent is one."""
        statuses = (self.residency_father, self.residency_mother)
        if Residency.CITIZEN in statuses:
            return "citizen"
        if Residency.PR in statuses:
            return "pr"
        return "foreigner"

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in _ENUM_FIELDS:
            data[key] = data[key].value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        """Build a profile from a plain dict (enum fields given by name)."""
        values = dict(data)
        for key, enum_cls in _ENUM_FIELDS.items():
            if key in values and not isinstance(values[key], enum_cls):
                values[key] = enum_cls(str(values[key]).upper())
        return cls(**values)


def validate_profile(profile: Profile) -> list[str]:
    """Validate that the profile can start a session. Returns list of error messages."""
    errors = []
    for key, enum_cls in _ENUM_FIELDS.items():
        if not isinstance(getattr(profile, key, None), enum_cls):
            errors.append(f"{key} must be one of {[e.value for e in enum_cls]}")
    for key in (
        "gross_income_father", "gross_income_mother",
        "disposable_income_father", "disposable_income_mother",
        "family_savings",
    ):
        value = getattr(profile, key)
        if not isinstance(value, (int, float)) or value < 0:
            errors.append(f"{key} must be a non-negative number (got {value!r})")
    if not profile.child_name or not str(profile.child_name).strip():
        errors.append("child_name is required")
    if not isinstance(profile.child_order, int) or profile.child_order < 1:
        errors.append(f"child_order must be >= 1 (got {profile.child_order!r})")
    return errors
