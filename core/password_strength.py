"""Local password-strength heuristic. No network, no breach lookup."""

import re
from dataclasses import asdict, dataclass
from enum import Enum


class Strength(Enum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


_SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


@dataclass
class StrengthReport:
    """Which character classes a password uses, and the resulting rating."""

    strength: Strength
    length: int
    has_upper: bool
    has_lower: bool
    has_digit: bool
    has_special: bool

    @property
    def criteria_met(self) -> int:
        return sum([self.has_upper, self.has_lower, self.has_digit, self.has_special])

    def to_dict(self) -> dict:
        data = asdict(self)
        data["strength"] = self.strength.value
        data["criteria_met"] = self.criteria_met
        return data


def check_password_strength(password: str) -> StrengthReport:
    """
    Rate a password.

    strong: at least 12 characters and 3 of the 4 character classes
    medium: at least 8 characters and 2 classes
    weak:   anything else
    """
    report = StrengthReport(
        strength=Strength.WEAK,
        length=len(password),
        has_upper=bool(re.search(r"[A-Z]", password)),
        has_lower=bool(re.search(r"[a-z]", password)),
        has_digit=bool(re.search(r"\d", password)),
        has_special=bool(_SPECIAL_CHARS.search(password)),
    )

    if report.length >= 12 and report.criteria_met >= 3:
        report.strength = Strength.STRONG
    elif report.length >= 8 and report.criteria_met >= 2:
        report.strength = Strength.MEDIUM

    return report
