"""MalleableEngine Problem — instances, schedules, validation and compaction."""
from .models import *  # noqa: F401,F403
from .errors import *  # noqa: F401,F403
from .loader import load  # noqa: F401
from .list_scheduler import list_schedule  # noqa: F401
from .compaction import compact  # noqa: F401
