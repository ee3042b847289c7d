"""
Fixed step integrators for arbitrary 2D vector fields.

These are the plain first order schemes.  The vector field is evaluated at the
start of every step, so a field that is only defined on the open interval
(0, 1) never gets evaluated at t=1.  The noise for Euler-Maruyama follows the
convention of `probpath.sde.brownian`: increment i is already scaled by the
square root of its interval.
"""
import jax
import jax.numpy as jnp
from typing import Callable, Union
from jaxtyping import Array, Float, Scalar
from probpath.schedules.diffusion_coefficient import AbstractDiffusionCoefficientScheduler, ConstantDiffusionCoefficientScheduler
from probpath.util.misc import as_point, as_times
import probpath.util as util

__all__ = ['euler_trajectory',
           'euler_maruyama_trajectory']

VectorField = Callable[[Scalar, Float[Array, '2']], Float[Array, '2']]

def euler_trajectory(vector_field: VectorField,
                     frame_times: Float[Array, 'T'],
                     x0: Float[Array, '2']) -> Float[Array, 'T 2']:
  """Integrate dx/dt = vector_field(t, x) with the explicit Euler method.

  **Arguments**

  - `vector_field`: A function of (t, x) that returns the velocity at x
  - `frame_times`: The time grid.  Steps with a non-positive increment are skipped.
  - `x0`: The point at frame_times[0]

  **Returns**

  - The points of the path, one per time
  """
  zero_noise = jnp.zeros((as_times(frame_times).shape[0] - 1, 2))
  return euler_maruyama_trajectory(vector_field, frame_times, x0, 0.0, zero_noise)

def euler_maruyama_trajectory(vector_field: VectorField,
                              frame_times: Float[Array, 'T'],
                              x0: Float[Array, '2'],
                              diffusion: Union[AbstractDiffusionCoefficientScheduler, float, Scalar],
                              noise: Float[Array, 'T-1 2']) -> Float[Array, 'T 2']:
  """Integrate dx = vector_field(t, x)dt + sigma(t)dW with the Euler-Maruyama
  method.  There is no drift correction, so unlike
  `calculate_conditional_sde_trajectory` this does not stay on the marginals of
  a probability path unless `vector_field` already accounts for the noise.

  **Arguments**

  - `vector_field`: A function of (t, x) that returns the drift at x
  - `frame_times`: The time grid.  Steps with a non-positive increment are skipped.
  - `x0`: The point at frame_times[0]
  - `diffusion`: The diffusion coefficient sigma(t).  A number is treated as a
                 constant coefficient.
  - `noise`: Wiener increments, one per step

  **Returns**

  - The points of the path, one per time
  """
  x0 = as_point(x0, 'x0')
  frame_times = as_times(frame_times)
  noise = jnp.asarray(noise, dtype=float)
  n_steps = frame_times.shape[0] - 1
  if noise.shape != (n_steps, 2):
    raise ValueError(f"noise must have shape ({n_steps}, 2) for {frame_times.shape[0]} frame times, got {noise.shape}")

  if not isinstance(diffusion, AbstractDiffusionCoefficientScheduler):
    diffusion = ConstantDiffusionCoefficientScheduler(diffusion)

  def body(x, inputs):
    t_prev, t, dW = inputs
    dt = t - t_prev
    velocity = vector_field(t_prev, x)
    sigma = diffusion.get_diffusion(t_prev)
    x_next = x + velocity*dt + sigma*dW
    x_next = util.where(dt > 0, x_next, x)
    return x_next, x_next

  inputs = (frame_times[:-1], frame_times[1:], noise)
  _, xs = jax.lax.scan(body, x0, inputs)
  return jnp.concatenate([x0[None], xs], axis=0)
