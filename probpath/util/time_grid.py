"""Time grids for animating probability paths.

The visualizations step through a fixed number of frames and map each frame
index to a time in [0, 1] with a power law.  Powers above 1 place more frames
near t=1, which is where most of the interesting contraction of the conditional
paths happens.
"""
import warnings
import jax.numpy as jnp
import numpy as np
from typing import Union
from jaxtyping import Array, Float, Scalar
from probpath.util.misc import InvalidParameterError, as_times

__all__ = ['frame_index_to_time',
           'make_frame_times',
           'check_time_grid']

def frame_index_to_time(frame_index: Union[int, Float[Array, '...']],
                        num_frames: int,
                        power: float) -> Float[Array, '...']:
  """Map a frame index in [0, num_frames] to a time in [0, 1] using t = s^(1/power)
  where s = frame_index/num_frames.
  """
  s = jnp.asarray(frame_index, dtype=float)/num_frames
  return s**(1/power)

def make_frame_times(num_frames: int, power: float = 1.0) -> Float[Array, 'num_frames+1']:
  """Build the time grid for num_frames steps.  The grid has num_frames + 1
  entries, starts at 0 and ends at exactly 1.

  **Arguments**

  - `num_frames`: The number of steps between t=0 and t=1
  - `power`: The power of the frame-to-time mapping.  1 gives a uniform grid.

  **Returns**

  - The time grid
  """
  if num_frames <= 0:
    raise InvalidParameterError(f"num_frames must be positive, got {num_frames}")
  if power <= 0:
    raise InvalidParameterError(f"power must be positive, got {power}")
  return frame_index_to_time(jnp.arange(num_frames + 1), num_frames, power)

def check_time_grid(frame_times: Float[Array, 'T'], strict: bool = False) -> bool:
  """Check that a time grid is strictly increasing.

  The SDE integrator silently repeats the previous point on a non-increasing
  step.  Use this to surface malformed grids before integrating.

  **Arguments**

  - `frame_times`: The time grid
  - `strict`: Raise a ValueError instead of warning

  **Returns**

  - True if every adjacent pair is strictly increasing
  """
  frame_times = np.asarray(as_times(frame_times))
  bad = np.nonzero(np.diff(frame_times) <= 0)[0]
  if bad.size == 0:
    return True

  msg = f"frame_times is not strictly increasing at indices {bad.tolist()}"
  if strict:
    raise ValueError(msg)
  warnings.warn(msg + "; these steps will be skipped", stacklevel=2)
  return False
