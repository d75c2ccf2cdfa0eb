from .employee import Employee, WEEKDAYS, default_availability
from .shift import Shift, SwapRequest, SwapStatus
