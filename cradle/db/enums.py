# cradle/db/enums.py
from __future__ import annotations

from enum import Enum


class HouseholdRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    CAREGIVER = "CAREGIVER"
    VIEWER = "VIEWER"


# чем больше ранг, тем больше прав на изменения
ROLE_RANK = {
    HouseholdRole.VIEWER.value: 0,
    HouseholdRole.CAREGIVER.value: 1,
    HouseholdRole.ADMIN.value: 2,
    HouseholdRole.OWNER.value: 3,
}


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class SleepType(str, Enum):
    NAP = "NAP"
    NIGHT = "NIGHT"


class FeedingType(str, Enum):
    BREAST = "BREAST"
    BOTTLE = "BOTTLE"
    SOLIDS = "SOLIDS"


class BreastSide(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    BOTH = "BOTH"


class BottleContentType(str, Enum):
    FORMULA = "FORMULA"
    BREAST_MILK = "BREAST_MILK"


class DiaperType(str, Enum):
    WET = "WET"
    DIRTY = "DIRTY"
    BOTH = "BOTH"
    DRY = "DRY"


class DiaperColor(str, Enum):
    YELLOW = "YELLOW"
    GREEN = "GREEN"
    BROWN = "BROWN"
    BLACK = "BLACK"
    RED = "RED"
    WHITE = "WHITE"
    OTHER = "OTHER"


class DiaperConsistency(str, Enum):
    WATERY = "WATERY"
    LOOSE = "LOOSE"
    SOFT = "SOFT"
    FORMED = "FORMED"
    HARD = "HARD"


class DiaperSize(str, Enum):
    NEWBORN = "NEWBORN"
    SIZE_1 = "SIZE_1"
    SIZE_2 = "SIZE_2"
    SIZE_3 = "SIZE_3"
    SIZE_4 = "SIZE_4"
    SIZE_5 = "SIZE_5"
    SIZE_6 = "SIZE_6"


class DiaperAmount(str, Enum):
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"


class ActivityType(str, Enum):
    TUMMY_TIME = "TUMMY_TIME"
    BATH = "BATH"
    OUTDOOR_PLAY = "OUTDOOR_PLAY"
    INDOOR_PLAY = "INDOOR_PLAY"
    SCREEN_TIME = "SCREEN_TIME"
    SKIN_TO_SKIN = "SKIN_TO_SKIN"
    STORYTIME = "STORYTIME"
    TEETH_BRUSHING = "TEETH_BRUSHING"
    OTHER = "OTHER"


ACTIVITY_LABELS = {
    ActivityType.TUMMY_TIME.value: "Tummy Time",
    ActivityType.BATH.value: "Bath",
    ActivityType.OUTDOOR_PLAY.value: "Outdoor Play",
    ActivityType.INDOOR_PLAY.value: "Indoor Play",
    ActivityType.SCREEN_TIME.value: "Screen Time",
    ActivityType.SKIN_TO_SKIN.value: "Skin to Skin",
    ActivityType.STORYTIME.value: "Storytime",
    ActivityType.TEETH_BRUSHING.value: "Teeth Brushing",
    ActivityType.OTHER.value: "Other Activity",
}


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class TimelineCategory(str, Enum):
    SLEEP = "SLEEP"
    FEEDING = "FEEDING"
    DIAPER = "DIAPER"
    PUMPING = "PUMPING"
    MEDICINE = "MEDICINE"
    GROWTH = "GROWTH"
    TEMPERATURE = "TEMPERATURE"
    ACTIVITY = "ACTIVITY"
