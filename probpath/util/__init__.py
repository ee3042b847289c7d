from probpath.util.misc import *
from probpath.util.time_grid import *
