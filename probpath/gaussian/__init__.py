from probpath.gaussian.mixture import *
