"""
Medical eligibility engine for whole-blood donors.
Returns an EligibilityResult; the first failing rule determines the reason.
"""
import logging
from datetime import date, timedelta
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pulsecare.schemas.donor import Donor
from pulsecare.schemas.engine import EligibilityResult
from pulsecare.schemas.enums import EligibilityReason

logger = logging.getLogger(__name__)


class EligibilityRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_age: int = 18
    max_age: int = 60
    min_weight_kg: float = 50.0
    donation_interval_days: int = 120  # WHO minimum between whole-blood donations

    @classmethod
    def from_settings(cls) -> "EligibilityRules":
        from pulsecare.core.config import settings
        return cls(
            min_age=settings.ELIGIBILITY_MIN_AGE,
            max_age=settings.ELIGIBILITY_MAX_AGE,
            min_weight_kg=settings.ELIGIBILITY_MIN_WEIGHT_KG,
            donation_interval_days=settings.DONATION_INTERVAL_DAYS,
        )


DEFAULT_RULES = EligibilityRules()


def calculate_age(date_of_birth: date, as_of: date) -> int:
    """Whole years completed on as_of. A 29 Feb birthday is reached on 1 Mar in common years."""
    age = as_of.year - date_of_birth.year
    if (as_of.month, as_of.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def next_eligible_date(last_donation_date: Optional[date], rules: EligibilityRules = DEFAULT_RULES) -> Optional[date]:
    if last_donation_date is None:
        return None
    return last_donation_date + timedelta(days=rules.donation_interval_days)


def evaluate(donor: Donor, as_of: date, rules: EligibilityRules = DEFAULT_RULES) -> EligibilityResult:
    """
    Evaluate medical eligibility of a donor on a given date.

    Rules, in order:
      1. date of birth and weight must be present (incomplete profile)
      2. weight >= min_weight_kg (underweight)
      3. age within [min_age, max_age] (age out of range)
      4. at least donation_interval_days since the last donation

    Args:
        donor: Donor snapshot
        as_of: Evaluation date; never read from the clock
        rules: Thresholds to apply

    Returns:
        EligibilityResult with the reason and, for the interval rule, the next eligible date
    """
    if donor.date_of_birth is None or donor.weight is None:
        return EligibilityResult(is_eligible=False, reason=EligibilityReason.INCOMPLETE_PROFILE)

    age = calculate_age(donor.date_of_birth, as_of)

    if donor.weight < rules.min_weight_kg:
        return EligibilityResult(is_eligible=False, reason=EligibilityReason.UNDERWEIGHT, age=age)

    if age < rules.min_age or age > rules.max_age:
        return EligibilityResult(is_eligible=False, reason=EligibilityReason.AGE_OUT_OF_RANGE, age=age)

    if donor.last_donation_date is not None:
        # A donation dated after as_of counts as zero days ago
        days_since = max((as_of - donor.last_donation_date).days, 0)
        if days_since < rules.donation_interval_days:
            next_date = next_eligible_date(donor.last_donation_date, rules)
            return EligibilityResult(
                is_eligible=False,
                reason=EligibilityReason.TOO_SOON_SINCE_LAST_DONATION,
                next_eligible_date=next_date,
                days_until_eligible=(next_date - as_of).days,
                age=age,
            )

    return EligibilityResult(
        is_eligible=True,
        reason=EligibilityReason.ELIGIBLE,
        next_eligible_date=None,
        days_until_eligible=0,
        age=age,
    )
