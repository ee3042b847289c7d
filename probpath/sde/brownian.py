r"""
Brownian increments for driving the conditional SDE.

The increments are generated separately from the integrator so that a
trajectory can be replayed exactly once its noise is fixed.  All randomness
comes from an explicit PRNG key.  Each increment is a pair of independent
$N(0, dt)$ draws, i.e. $dW = \sqrt{dt}\,\epsilon$ with $\epsilon \sim N(0, I_2)$.
"""
import jax
import jax.numpy as jnp
from jax import random
from typing import Tuple, Union
from jaxtyping import Array, Float, Scalar, PRNGKeyArray
from probpath.util.misc import InvalidParameterError, as_times

__all__ = ['box_muller',
           'generate_brownian_noise',
           'generate_brownian_noise_for_times',
           'compute_brownian_motion']

def box_muller(u1: Float[Array, '...'], u2: Float[Array, '...']) -> Tuple[Float[Array, '...'], Float[Array, '...']]:
  """Turn two independent Uniform(0, 1] samples into two independent standard normals"""
  r = jnp.sqrt(-2.0*jnp.log(u1))
  theta = 2.0*jnp.pi*u2
  return r*jnp.cos(theta), r*jnp.sin(theta)

def _standard_normal_pairs(key: PRNGKeyArray, n: int) -> Float[Array, 'n 2']:
  k1, k2 = random.split(key)
  # Flip [0, 1) to (0, 1] so that log(u1) stays finite
  u1 = 1.0 - random.uniform(k1, (n,))
  u2 = random.uniform(k2, (n,))
  z1, z2 = box_muller(u1, u2)
  return jnp.stack([z1, z2], axis=-1)

################################################################################################################

def generate_brownian_noise(key: PRNGKeyArray,
                            num_steps: int,
                            dt: Union[float, Scalar]) -> Float[Array, 'num_steps 2']:
  """Generate Wiener increments for a uniform time grid.

  **Arguments**

  - `key`: JAX random key
  - `num_steps`: The number of increments
  - `dt`: The step size shared by every increment

  **Returns**

  - Increments of shape (num_steps, 2), each coordinate distributed as N(0, dt)
  """
  if num_steps <= 0:
    raise InvalidParameterError(f"num_steps must be positive, got {num_steps}")
  if dt <= 0:
    raise InvalidParameterError(f"dt must be positive, got {dt}")
  return _standard_normal_pairs(key, num_steps)*jnp.sqrt(dt)

def generate_brownian_noise_for_times(key: PRNGKeyArray,
                                      frame_times: Float[Array, 'T']) -> Float[Array, 'T-1 2']:
  """Generate Wiener increments for a (possibly non-uniform) time grid.

  Increment i belongs to the interval [frame_times[i], frame_times[i+1]] and is
  scaled by the square root of that interval's width.  The first time has no
  increment.  Intervals of non-positive width get a zero increment.

  **Arguments**

  - `key`: JAX random key
  - `frame_times`: The time grid

  **Returns**

  - Increments of shape (len(frame_times) - 1, 2)
  """
  frame_times = as_times(frame_times)
  dts = jnp.diff(frame_times)
  if dts.shape[0] == 0:
    return jnp.zeros((0, 2))
  eps = _standard_normal_pairs(key, dts.shape[0])
  return eps*jnp.sqrt(jnp.maximum(dts, 0.0))[:,None]

def compute_brownian_motion(noise: Union[Float[Array, 'N 2'], Float[Array, 'B N 2']],
                            sigma: Union[float, Scalar] = 1.0) -> Union[Float[Array, 'N+1 2'], Float[Array, 'B N+1 2']]:
  """Accumulate increments into Brownian paths that start at the origin.

  **Arguments**

  - `noise`: Increments for a single path (N, 2) or for a batch of paths (B, N, 2)
  - `sigma`: Scale applied to every increment

  **Returns**

  - Paths with N + 1 points.  The first point is the origin.
  """
  noise = jnp.asarray(noise, dtype=float)
  if noise.ndim not in (2, 3) or noise.shape[-1] != 2:
    raise ValueError(f"noise must have shape (N, 2) or (B, N, 2), got {noise.shape}")
  path = jnp.cumsum(noise*sigma, axis=-2)
  origin = jnp.zeros(noise.shape[:-2] + (1, 2))
  return jnp.concatenate([origin, path], axis=-2)
