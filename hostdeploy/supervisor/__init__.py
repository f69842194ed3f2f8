"""
Process supervisor interface and the PM2 implementation.
"""

from .base import ProcessRecord, ProcessStatus, StartPolicy, Supervisor
from .pm2 import Pm2Supervisor, parse_jlist

__all__ = [
    "ProcessRecord",
    "ProcessStatus",
    "StartPolicy",
    "Supervisor",
    "Pm2Supervisor",
    "parse_jlist",
]
