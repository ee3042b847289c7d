from probpath.schedules.noise_scheduler import *
from probpath.schedules.diffusion_coefficient import *
