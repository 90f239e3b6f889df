from pydantic import BaseModel
from typing import List, Optional

class FeeBlock(BaseModel):
    amount: int

class LateFeeIn(FeeBlock):
    gracePeriodHours: float = 2

class ExtensionFeeIn(FeeBlock):
    thresholdHours: float = 6

class FeeSettingsIn(BaseModel):
    lateFee: LateFeeIn
    extensionFee: ExtensionFeeIn

class ReminderSettingsIn(BaseModel):
    enabled: bool = True
    intervals: List[float] = [24, 2]
    lookbackHours: Optional[float] = None

class ReminderSettingsOut(BaseModel):
    enabled: bool
    intervals: List[float]
    hoursBefore: float
    lookbackHours: float
