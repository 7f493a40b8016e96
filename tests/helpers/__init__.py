from .grids import copy_grid, ramp_grid, zeros_grid
from .logs import events, get_record_by_event

__all__ = [
    "copy_grid",
    "events",
    "get_record_by_event",
    "ramp_grid",
    "zeros_grid",
]
