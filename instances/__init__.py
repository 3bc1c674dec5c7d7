"""MalleableEngine Instances — CSV instance files and random instance generation."""
from .models import *  # noqa: F401,F403
from .io import read_instance, write_instance  # noqa: F401
from .generator import generate_instance  # noqa: F401
