"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .customer import *  # noqa: F403
from .health import *  # noqa: F403
from .policy import *  # noqa: F403
from .stats import *  # noqa: F403
