"""Growth stages resolved from the child's age in months."""

from enum import Enum

# Stage start ages shared by every path (months)
KINDERGARTEN_START = 24
PRIMARY_START = 72
SECONDARY_START = 144
POST_SECONDARY_START = 192

# Post-secondary course length by path (months)
PATH_DURATION_MONTHS = {"jc": 24, "poly": 36}
DEFAULT_PATH = "jc"
NATIONAL_SERVICE_MONTHS = 24
UNIVERSITY_MONTHS = 48


class GrowthStage(Enum):
    NEWBORN = "NEWBORN"
    KINDERGARTEN = "KINDERGARTEN"
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    POST_SECONDARY = "POST_SECONDARY"
    NATIONAL_SERVICE = "NATIONAL_SERVICE"
    UNIVERSITY = "UNIVERSITY"
    ADULT = "ADULT"

    @property
    def order(self) -> int:
        return _STAGE_ORDER[self]


_STAGE_ORDER = {stage: i for i, stage in enumerate(GrowthStage)}


def _normalize_path(path: str | None) -> str:
    if path is None:
        return DEFAULT_PATH
    path = str(path).lower()
    if path not in PATH_DURATION_MONTHS:
        raise ValueError(f"Unknown post-secondary path: {path!r} (expected jc or poly)")
    return path


def stage_thresholds(gender: str, path: str | None = None) -> list[tuple[int, GrowthStage]]:
    """Return [(start_month, stage), ...] in ascending order for a gender/path."""
    path = _normalize_path(path)
    thresholds = [
        (0, GrowthStage.NEWBORN),
        (KINDERGARTEN_START, GrowthStage.KINDERGARTEN),
        (PRIMARY_START, GrowthStage.PRIMARY),
        (SECONDARY_START, GrowthStage.SECONDARY),
        (POST_SECONDARY_START, GrowthStage.POST_SECONDARY),
    ]
    month = POST_SECONDARY_START + PATH_DURATION_MONTHS[path]
    if _is_male(gender):
        thresholds.append((month, GrowthStage.NATIONAL_SERVICE))
        month += NATIONAL_SERVICE_MONTHS
    thresholds.append((month, GrowthStage.UNIVERSITY))
    month += UNIVERSITY_MONTHS
    thresholds.append((month, GrowthStage.ADULT))
    return thresholds


def resolve_stage(age_months: int, gender: str, path: str | None = None) -> GrowthStage:
    """Resolve the growth stage for an age. Non-decreasing in age_months."""
    if age_months < 0:
        raise ValueError(f"age_months must be >= 0, got {age_months}")
    stage = GrowthStage.NEWBORN
    for start, candidate in stage_thresholds(gender, path):
        if age_months >= start:
            stage = candidate
        else:
            break
    return stage


def terminal_age_months(gender: str, path: str | None = None) -> int:
    """Age at which the child becomes ADULT and the simulation completes.

    Female: 264 (JC) / 276 (Poly). Male adds two years of National Service.
    """
    return stage_thresholds(gender, path)[-1][0]


def stage_start_months(gender: str, path: str | None = None) -> dict[GrowthStage, int]:
    return {stage: start for start, stage in stage_thresholds(gender, path)}


def _is_male(gender) -> bool:
    return str(getattr(gender, "value", gender)).upper() == "MALE"
