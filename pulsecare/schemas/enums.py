import enum


class BloodGroup(str, enum.Enum):
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"


class EligibilityReason(str, enum.Enum):
    ELIGIBLE = "eligible"
    INCOMPLETE_PROFILE = "incomplete_profile"
    UNDERWEIGHT = "underweight"
    AGE_OUT_OF_RANGE = "age_out_of_range"
    TOO_SOON_SINCE_LAST_DONATION = "too_soon_since_last_donation"


class AvailabilityStatus(str, enum.Enum):
    ELIGIBLE = "eligible"
    BOOKED = "booked"
    IN_PROGRESS = "in_progress"
    UNAVAILABLE = "unavailable"
    INACTIVE = "inactive"


class BookingState(str, enum.Enum):
    BOOKED = "booked"
    IN_PROGRESS = "in_progress"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    BOOKED = "booked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class GeoLevel(str, enum.Enum):
    DIVISION = "division"
    DISTRICT = "district"
    UPAZILA = "upazila"


class FunnelStageName(str, enum.Enum):
    REGISTERED = "registered"
    ELIGIBLE = "eligible"
    AVAILABLE = "available"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class TrendGranularity(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# Display order used by every per-blood-group read model
BLOOD_GROUPS = list(BloodGroup)

OPEN_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.BOOKED, RequestStatus.IN_PROGRESS)
SCHEDULED_REQUEST_STATUSES = (RequestStatus.BOOKED, RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED)
