from kidschedule.calendar_logic import CalendarMonthEngine
from kidschedule.conflicts import detect_conflicts
from kidschedule.custody import CustodyEngine, InvalidScheduleError

__version__ = "0.1.0"
