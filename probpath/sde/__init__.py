from probpath.sde.brownian import *
from probpath.sde.conditional_trajectory import *
from probpath.sde.vector_field import *
