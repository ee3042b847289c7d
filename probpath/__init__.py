from probpath.util.misc import InvalidParameterError
from probpath.util.time_grid import frame_index_to_time, make_frame_times, check_time_grid
from probpath.schedules import *
from probpath.gaussian import *
from probpath.sde import *
